from dataclasses import dataclass, field
from typing import Any

STRUCTURAL_FLOOR = "structural-floor"
UNDERLAYMENT = "underlayment"


@dataclass(frozen=True)
class SubmittalStatus:
    """The 'Status / Action' checkboxes on the cover form."""

    for_review: bool = False
    for_approval: bool = False
    for_record: bool = False
    for_information_only: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SubmittalStatus":
        data = data or {}
        return cls(
            for_review=bool(data.get("forReview", data.get("for_review", False))),
            for_approval=bool(data.get("forApproval", data.get("for_approval", False))),
            for_record=bool(data.get("forRecord", data.get("for_record", False))),
            for_information_only=bool(data.get("forInformationOnly", data.get("for_information_only", False))),
        )


@dataclass(frozen=True)
class ProjectFormData:
    submitted_to: str = ""
    project_name: str = ""
    project_number: str = ""
    prepared_by: str = ""
    email_address: str = ""
    phone_number: str = ""
    date: str = ""
    product_type: str = UNDERLAYMENT
    status: SubmittalStatus = field(default_factory=SubmittalStatus)

    @property
    def is_structural_floor(self) -> bool:
        return self.product_type == STRUCTURAL_FLOOR

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectFormData":
        """Build form data from a submitted form. Accepts camelCase or snake_case keys."""

        def _text(camel: str, snake: str) -> str:
            value = data.get(camel, data.get(snake))
            return "" if value is None else str(value)

        return cls(
            submitted_to=_text("submittedTo", "submitted_to"),
            project_name=_text("projectName", "project_name"),
            project_number=_text("projectNumber", "project_number"),
            prepared_by=_text("preparedBy", "prepared_by"),
            email_address=_text("emailAddress", "email_address"),
            phone_number=_text("phoneNumber", "phone_number"),
            date=_text("date", "date"),
            product_type=_text("productType", "product_type") or UNDERLAYMENT,
            status=SubmittalStatus.from_dict(data.get("status")),
        )


@dataclass(frozen=True)
class SourceDocument:
    id: str
    name: str
    type: str
    url: str  # storage path, not a fetchable URL


@dataclass(frozen=True)
class SelectedDocument:
    document: SourceDocument
    selected: bool
    order: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelectedDocument":
        doc = data["document"]
        return cls(
            document=SourceDocument(
                id=str(doc.get("id", "")),
                name=str(doc["name"]),
                type=str(doc.get("type", "")),
                url=str(doc["url"]),
            ),
            selected=bool(data.get("selected", False)),
            order=int(data.get("order", 0)),
        )


@dataclass(frozen=True)
class DocumentSection:
    """One document's footprint in the packet. page_count includes the divider."""

    name: str
    type: str
    start_page: int
    page_count: int
    error: str | None = None


def sort_selected(selected_documents: list[SelectedDocument]) -> list[SelectedDocument]:
    """Keep only the documents the user ticked, in their chosen order."""
    return sorted((doc for doc in selected_documents if doc.selected), key=lambda doc: doc.order)
