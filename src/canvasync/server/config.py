from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from canvasync.protocol.constants import MAX_MESSAGE_BYTES, MAX_UPLOAD_BYTES


class Settings(BaseSettings):
    """
    Runtime config for the room server.

    - Loaded from environment variables (`CANVASYNC_*`)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CANVASYNC_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 3000

    # Inline image data travels over the socket
    max_message_bytes: int = MAX_MESSAGE_BYTES

    # Uploads are written here and served under /uploads
    upload_dir: Path = Path("uploads")
    upload_max_bytes: int = MAX_UPLOAD_BYTES

    # Debugging
    log_level: str = "INFO"
    debug_log_msgs: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
