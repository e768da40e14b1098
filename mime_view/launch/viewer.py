"""External viewer command lines for extracted parts."""

from __future__ import annotations

import logging
from pathlib import Path
import shlex
import subprocess

from mime_view.config import AppConfig
from mime_view.errors import ViewerLaunchFailure
from mime_view.parts.model import Classification, Part


logger = logging.getLogger(__name__)

DEFAULT_IMAGE_CMD = "display '%s'"
DEFAULT_AUDIO_CMD = "play '%s'"
DEFAULT_HTML_CMD = "firefox '%s'"
MIME_CMD = "metamail -d -b -x -c {content_type} '%s'"


def is_valid_cmdline(cmdline: str) -> bool:
    """Exactly one ``%s`` placeholder and no other ``%``."""
    pos = cmdline.find("%")
    return pos != -1 and cmdline[pos + 1:pos + 2] == "s" and "%" not in cmdline[pos + 2:]


def build_command(
    part: Part,
    filename: str | Path,
    config: AppConfig,
    cmdline: str | None = None,
) -> list[str] | None:
    default = None
    if cmdline:
        command = cmdline
    elif part.classification is Classification.OCTET_STREAM:
        return None
    elif part.classification is Classification.IMAGE:
        command, default = config.image_viewer, DEFAULT_IMAGE_CMD
    elif part.classification is Classification.AUDIO:
        command, default = config.audio_player, DEFAULT_AUDIO_CMD
    elif part.classification is Classification.HTML:
        command, default = config.uri_cmd, DEFAULT_HTML_CMD
    else:
        content_type = shlex.quote(part.content_type or "application/octet-stream")
        command = MIME_CMD.format(content_type=content_type)

    if not command or not is_valid_cmdline(command):
        if command:
            logger.warning("MIME viewer command line is invalid: %r", command)
        if default is None:
            return None
        command = default
    return [token.replace("%s", str(filename)) for token in shlex.split(command)]


def run_viewer(argv: list[str]) -> int:
    logger.info("Running viewer: %s", " ".join(argv))
    try:
        completed = subprocess.run(argv, check=False)
    except OSError as exc:
        raise ViewerLaunchFailure(f"Cannot run {argv[0]}: {exc}") from exc
    if completed.returncode != 0:
        logger.warning("Viewer %s exited with status %s", argv[0], completed.returncode)
    return completed.returncode
