"""Client configuration via Pydantic settings."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global client settings, loaded from env vars prefixed VIDROI_."""

    model_config = {"env_prefix": "VIDROI_"}

    # Analysis service
    service_url: str = "http://localhost:8000"
    analyze_path: str = "/analyze"
    videos_path: str = "/videos"
    request_timeout_s: float = 600.0
    retrieval_timeout_s: float = 30.0

    # Overlay size used before the video element has been laid out
    default_canvas_width: int = 800
    default_canvas_height: int = 600

    # Desktop window (frames are shrunk to fit, never enlarged)
    display_max_width: int = 1280
    display_max_height: int = 720

    # Web UI
    upload_dir: Path = Path("~/.vidroi/uploads")
    web_host: str = "127.0.0.1"
    web_port: int = 5000

    log_level: str = "INFO"


settings = Settings()
