import asyncio
import logging
import os
import textwrap
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from flask import Flask, current_app, jsonify, request, send_file, url_for
from waitress import serve

from packettool import packet
from packettool.fetch import PdfFetcher
from packettool.logger import configure_logger, console_formatter
from packettool.models import ProjectFormData, SelectedDocument
from packettool.packet_config import DEFAULT_PACKET_FILENAME, PacketConfig, PacketConfigParams
from packettool.storage import LocalStorage, StorageService, SupabaseStorage


@dataclass
class RequestContext:
    """Holds context information for a packet creation request."""

    session_id: str
    user_agent: str
    timestamp: str


def strtobool(value: str) -> bool:
    return value.lower() in ("y", "yes", "on", "1", "true", "t", "enabled")


def storage_from_env() -> StorageService:
    """Supabase storage when PACKETTOOL_STORAGE_URL is set, the local filesystem otherwise."""
    storage_url = os.environ.get("PACKETTOOL_STORAGE_URL")
    if storage_url:
        return SupabaseStorage(
            storage_url,
            os.environ.get("PACKETTOOL_STORAGE_KEY", ""),
            bucket=os.environ.get("PACKETTOOL_STORAGE_BUCKET", "documents"),
        )
    return LocalStorage(os.environ.get("PACKETTOOL_DOCUMENTS_DIR", "."))


def _parse_packet_request(payload: dict) -> tuple[ProjectFormData, list[SelectedDocument]]:
    """Raises KeyError, TypeError or ValueError on a malformed request body."""
    form_data = ProjectFormData.from_dict(payload["form"])
    documents = [SelectedDocument.from_dict(item) for item in payload.get("documents") or []]
    return form_data, documents


def _resolve_packet_path(raw_path: str | None) -> Path | None:
    """Only hand out files that live in the packets directory."""
    if not raw_path:
        return None
    packets_dir = Path(current_app.config["PACKETS_DIR"]).resolve()
    absolute_path = Path(raw_path).resolve()
    if absolute_path.parent != packets_dir or not absolute_path.exists():
        return None
    return absolute_path


def create_packet():
    t1 = datetime.now()
    context = RequestContext(
        session_id=str(uuid.uuid4())[:8],
        user_agent=request.headers.get("User-Agent") or "",
        timestamp=t1.strftime("%Y%m%d_%H%M%S"),
    )
    current_app.logger.debug(f"New session ID: {context.session_id} {context.user_agent}")

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        current_app.logger.error("Cannot create packet: request body is not a JSON object")
        return jsonify({"status": "error", "message": "Request body must be a JSON object."}), 400
    try:
        form_data, documents = _parse_packet_request(payload)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        current_app.logger.exception("Cannot create packet: malformed form data")
        return jsonify({"status": "error", "message": f"Malformed packet request: {e}"}), 400

    config = PacketConfig(
        PacketConfigParams(
            timestamp=context.timestamp,
            session_id=context.session_id,
            logs_dir=current_app.config["LOGS_DIR"],
            output_dir=current_app.config["PACKETS_DIR"],
            invariant=strtobool(str(payload.get("invariant", "false"))),
        )
    )
    configure_logger(config)
    output_file = packet.get_output_filename(form_data.project_name, context.timestamp)
    log_msg = f"""
        Calling packet.generate_packet with params:
        ....project: {form_data.project_name}
        ....documents: {[doc.document.name for doc in documents if doc.selected]}
        ....output_file: {output_file}"""
    current_app.logger.info(textwrap.dedent(log_msg))

    try:
        pdf_bytes = asyncio.run(
            packet.generate_packet(
                form_data,
                documents,
                current_app.config["STORAGE"],
                current_app.config["FETCHER"],
                config,
            )
        )
        output_path = config.output_dir / output_file
        output_path.write_bytes(pdf_bytes)
    except Exception:
        current_app.logger.exception("Fatal Error in processing packet")
        return jsonify({"status": "error", "message": f"Fatal error in creating packet. Session code: {context.session_id}"}), 500

    current_app.logger.info(f"Packet creation completed in {datetime.now() - t1} for session ID: {context.session_id}")
    return jsonify(
        {
            "status": "success",
            "message": "Packet created successfully!",
            "packet_path": str(output_path),
            "download_url": url_for("download_packet", path=str(output_path)),
            "preview_url": url_for("preview_packet", path=str(output_path)),
        }
    )


def download_packet():
    absolute_path = _resolve_packet_path(request.args.get("path"))
    if absolute_path is None:
        return jsonify({"status": "error", "message": "Download Error: packet does not exist in expected location."}), 404
    download_name = request.args.get("filename") or absolute_path.name or DEFAULT_PACKET_FILENAME
    return send_file(absolute_path, mimetype="application/pdf", as_attachment=True, download_name=download_name)


def preview_packet():
    absolute_path = _resolve_packet_path(request.args.get("path"))
    if absolute_path is None:
        return jsonify({"status": "error", "message": "Preview Error: packet does not exist in expected location."}), 404
    return send_file(absolute_path, mimetype="application/pdf", as_attachment=False)


def create_app(storage: StorageService | None = None, fetcher: PdfFetcher | None = None, packets_dir: Path | None = None):
    """Entry point for running the Flask application."""
    app = Flask(__name__)
    app.logger.setLevel(logging.DEBUG)
    app.logger.propagate = False

    for handler in app.logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setFormatter(console_formatter("APP"))

    defaults = PacketConfig(PacketConfigParams(session_id="app", output_dir=packets_dir))
    defaults.output_dir.mkdir(parents=True, exist_ok=True)
    defaults.logs_dir.mkdir(parents=True, exist_ok=True)

    app.config["PACKETS_DIR"] = defaults.output_dir
    app.config["LOGS_DIR"] = defaults.logs_dir
    app.config["STORAGE"] = storage or storage_from_env()
    app.config["FETCHER"] = fetcher or PdfFetcher(timeout=defaults.fetch_timeout)

    app.add_url_rule("/create_packet", view_func=create_packet, methods=["POST"])
    app.add_url_rule("/download/packet", view_func=download_packet, methods=["GET"])
    app.add_url_rule("/preview/packet", view_func=preview_packet, methods=["GET"])
    return app


def main():
    """Creates and runs the Flask application."""
    created_app = create_app()
    host = os.environ.get("PACKETTOOL_HOST", "0.0.0.0")  # nosec B104
    port = int(os.environ.get("PACKETTOOL_PORT", "7001"))

    created_app.logger.info("packettool starting...")

    if os.environ.get("PACKETTOOL_DEV"):
        created_app.logger.info(f"APP - Starting in DEVELOPMENT mode on {host}:{port}")
        created_app.run(host=host, port=port, debug=True)  # nosec B201
    else:
        created_app.logger.info(f"APP - Server started on {host}:{port} (Production/Waitress).")
        serve(created_app, host=host, port=port, threads=4, connection_limit=100, channel_timeout=120)


if __name__ == "__main__":
    main()
