import logging
import textwrap
from datetime import datetime
from logging import Logger
from pathlib import Path

from colorlog import ColoredFormatter

from packettool.packet_config import PacketConfig

LOGGER_NAME = "packet_logger"

LOG_COLORS = {"DEBUG": "cyan", "INFO": "green", "WARNING": "yellow", "ERROR": "red", "CRITICAL": "red,bg_white"}

packet_logger = logging.getLogger(LOGGER_NAME)


def console_formatter(tag: str) -> ColoredFormatter:
    """Colored console formatter, e.g. tag='PKT' gives '... - INFO - [PKT]: message'."""
    return ColoredFormatter(
        f"%(log_color)s%(asctime)s - %(levelname)s - [{tag}]: %(message)s%(reset)s",
        log_colors=LOG_COLORS,
        reset=True,
    )


def configure_logger(packet_config: PacketConfig | None = None, session_id: str | None = None) -> Logger:
    """Configure the packet logger for one assembly session.

    Console output is colored. A plain-text copy goes to
    <logs_dir>/packettool_<session_id>.log so a failed packet can be
    diagnosed after the fact.
    """
    # pdfminer (via pdfplumber) and pikepdf are chatty at DEBUG
    logging.getLogger("pdfminer").setLevel(logging.ERROR)

    logs_dir = packet_config.logs_dir if packet_config else Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Clear existing handlers to prevent duplicate logs on subsequent runs
    if packet_logger.hasHandlers():
        for handler in packet_logger.handlers:
            handler.close()
        packet_logger.handlers.clear()

    packet_logger.setLevel(logging.DEBUG)
    packet_logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(console_formatter("PKT"))
    packet_logger.addHandler(console_handler)

    if not session_id:
        session_id = packet_config.session_id if packet_config else datetime.now().strftime("%Y%m%d%H%M%S")
    logs_path = logs_dir / f"packettool_{session_id}.log"
    session_file_handler = logging.FileHandler(logs_path)
    session_file_handler.setLevel(logging.DEBUG)
    session_file_handler.setFormatter(logging.Formatter("%(asctime)s-%(levelname)s-[PKT]: %(message)s"))
    packet_logger.addHandler(session_file_handler)
    return packet_logger


def dedent_and_log(logger: Logger, message: str, level: int = logging.DEBUG):
    """Log a triple-quoted block one line at a time, without its indentation."""
    for line in textwrap.dedent(message).strip().splitlines():
        logger.log(level, line)
