from __future__ import annotations

import os
from pathlib import Path
from typing import List


class Settings:
    """Centralized configuration for the Slingo backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent

        self.data_root: Path = Path(
            os.environ.get("SLINGO_DATA_ROOT") or (repo_root / "data")
        ).expanduser()
        # Zone used for calendar-day comparisons and the morning notification hour.
        self.timezone: str = os.environ.get("SLINGO_TIMEZONE") or "UTC"
        self.default_base_goal: int = int(os.environ.get("SLINGO_DEFAULT_BASE_GOAL") or "2000")
        self.log_level: str = (os.environ.get("SLINGO_LOG_LEVEL") or "INFO").upper()
        self.max_image_bytes: int = int(os.environ.get("SLINGO_MAX_IMAGE_BYTES") or "1500000")

        # ---- Vision model (OpenAI-compatible chat completions) ----
        self.openai_api_key: str | None = os.environ.get("OPENAI_API_KEY")
        self.openai_base_url: str = os.environ.get(
            "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
        self.vision_model: str = os.environ.get("SLINGO_VISION_MODEL", "gpt-4o")
        self.vision_timeout: float = float(os.environ.get("SLINGO_VISION_TIMEOUT", "30"))
        self.vision_max_tokens: int = int(os.environ.get("SLINGO_VISION_MAX_TOKENS", "1000"))
        self.vision_temperature: float = float(os.environ.get("SLINGO_VISION_TEMPERATURE", "0.2"))

        cors = os.environ.get("SLINGO_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
