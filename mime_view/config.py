"""Configuration loading for the message view."""

from __future__ import annotations

from dataclasses import dataclass
import os
import tempfile


TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    tmp_dir: str
    log_level: str = "INFO"
    log_file: str | None = None
    auto_check_signatures: bool = False
    image_preview: bool = True
    image_viewer: str | None = None
    audio_player: str | None = None
    uri_cmd: str | None = None
    gpg_binary: str = "gpg"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def load_config() -> AppConfig:
    tmp_dir = os.getenv("MIMEVIEW_TMP_DIR", os.path.join(tempfile.gettempdir(), "mimeview"))
    return AppConfig(
        tmp_dir=tmp_dir,
        log_level=os.getenv("MIMEVIEW_LOG_LEVEL", "INFO"),
        log_file=os.getenv("MIMEVIEW_LOG_FILE"),
        auto_check_signatures=_env_flag("MIMEVIEW_AUTO_CHECK_SIGNATURES", False),
        image_preview=_env_flag("MIMEVIEW_IMAGE_PREVIEW", True),
        image_viewer=os.getenv("MIMEVIEW_IMAGE_VIEWER"),
        audio_player=os.getenv("MIMEVIEW_AUDIO_PLAYER"),
        uri_cmd=os.getenv("MIMEVIEW_URI_CMD"),
        gpg_binary=os.getenv("MIMEVIEW_GPG", "gpg"),
    )
