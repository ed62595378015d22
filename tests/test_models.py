"""Tests for packettool.models and packettool.packet_config."""

from pathlib import Path

from conftest import selected

from packettool.models import ProjectFormData, SelectedDocument, SubmittalStatus, sort_selected
from packettool.packet_config import DEFAULT_FETCH_TIMEOUT, DEFAULT_SIGNED_URL_EXPIRY, PacketConfig, PacketConfigParams


def test_form_data_from_camel_case():
    form = ProjectFormData.from_dict(
        {
            "submittedTo": "Acme",
            "projectName": "Tower",
            "projectNumber": None,
            "preparedBy": "Jo",
            "emailAddress": "jo@example.com",
            "phoneNumber": "555",
            "date": "2025-10-01",
            "productType": "structural-floor",
            "status": {"forReview": True, "forInformationOnly": True},
        }
    )
    assert form.submitted_to == "Acme"
    assert form.project_number == ""
    assert form.is_structural_floor
    assert form.status == SubmittalStatus(for_review=True, for_information_only=True)


def test_form_data_defaults():
    form = ProjectFormData.from_dict({"project_name": "Tower"})
    assert form.project_name == "Tower"
    assert form.product_type == "underlayment"
    assert not form.is_structural_floor
    assert form.status == SubmittalStatus()


def test_selected_document_from_dict():
    doc = SelectedDocument.from_dict(
        {"document": {"id": 7, "name": "Warranty", "type": "warranty", "url": "docs/warranty.pdf"}, "selected": True, "order": "3"}
    )
    assert doc.document.id == "7"
    assert doc.document.url == "docs/warranty.pdf"
    assert doc.selected
    assert doc.order == 3


def test_sort_selected_filters_and_orders():
    docs = [selected("c", order=5), selected("skip", order=0, is_selected=False), selected("a", order=1), selected("b", order=1)]
    assert [d.document.name for d in sort_selected(docs)] == ["a", "b", "c"]


def test_packet_config_defaults():
    config = PacketConfig(PacketConfigParams(timestamp="2025-10-01-120000"))
    assert config.session_id == "2025-10-01-120000"
    assert config.signed_url_expiry == DEFAULT_SIGNED_URL_EXPIRY
    assert config.fetch_timeout == DEFAULT_FETCH_TIMEOUT
    assert config.logs_dir.parts[-3:] == ("packettool", "logs", "2025-10-01-120000")
    assert config.output_dir.parts[-2:] == ("packettool", "packets")
    assert config.invariant is False


def test_packet_config_overrides(tmp_path):
    config = PacketConfig(PacketConfigParams(session_id="abc", signed_url_expiry=60, logs_dir=str(tmp_path), invariant=True))
    assert config.session_id == "abc"
    assert config.signed_url_expiry == 60
    assert config.logs_dir == Path(tmp_path)
    assert config.invariant is True
