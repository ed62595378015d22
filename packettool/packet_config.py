import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

DEFAULT_SIGNED_URL_EXPIRY = 3600  # seconds
DEFAULT_FETCH_TIMEOUT = 30.0  # seconds
DEFAULT_PACKET_FILENAME = "document-packet.pdf"


class PacketConfigParams(NamedTuple):
    timestamp: str = ""
    session_id: str = ""
    signed_url_expiry: int | None = None
    fetch_timeout: float | None = None
    logs_dir: Path | None = None
    output_dir: Path | None = None
    invariant: bool = False


@dataclass(init=False)
class PacketConfig:
    def __init__(
        self,
        packet_config_params: PacketConfigParams | None = None,
    ):
        (
            timestamp,
            session_id,
            signed_url_expiry,
            fetch_timeout,
            logs_dir,
            output_dir,
            invariant,
        ) = packet_config_params or PacketConfigParams()

        self.timestamp = timestamp or datetime.now().strftime("%Y-%m-%d-%H%M%S")
        self.session_id = session_id if session_id else self.timestamp
        self.signed_url_expiry = signed_url_expiry if signed_url_expiry else DEFAULT_SIGNED_URL_EXPIRY
        self.fetch_timeout = fetch_timeout if fetch_timeout else DEFAULT_FETCH_TIMEOUT
        base_temp = tempfile.gettempdir()
        self.logs_dir = Path(logs_dir) if logs_dir else Path(base_temp) / "packettool" / "logs" / self.session_id
        self.output_dir = Path(output_dir) if output_dir else Path(base_temp) / "packettool" / "packets"
        # invariant output strips timestamps and random IDs so identical inputs give identical bytes
        self.invariant = bool(invariant)
