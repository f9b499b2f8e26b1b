from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

CONFIG_FILE = Path("factlens_config.json")

REQUIRED_ENV_VARS = [
    "GEMINI_API_KEY",
]

DEFAULT_CONFIG: dict[str, Any] = {
    "standard_model": "gemini-2.5-flash",
    "deep_model": "gemini-3-pro-preview",
    "request_timeout_seconds": 120,
    "max_pdf_pages": 10,
    "max_upload_bytes": 20 * 1024 * 1024,
    "history_file": "factlens_history.json",
    "history_capacity": 10,
    "host": "127.0.0.1",
    "port": 5001,
    "cors_origins": ["http://localhost:8000"],
    "log_file": "factlens.log",
    "log_level": "INFO",
}


@dataclass
class Settings:
    """Holds all application configuration loaded from environment variables and config file."""

    gemini_api_key: str
    standard_model: str = "gemini-2.5-flash"
    deep_model: str = "gemini-3-pro-preview"
    request_timeout_seconds: float = 120
    max_pdf_pages: int = 10
    max_upload_bytes: int = 20 * 1024 * 1024
    history_file: str = "factlens_history.json"
    history_capacity: int = 10
    host: str = "127.0.0.1"
    port: int = 5001
    cors_origins: list[str] = field(default_factory=list)
    log_file: str = "factlens.log"
    log_level: str = "INFO"


def _load_config_file() -> dict[str, Any]:
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, encoding="utf-8") as f:
            user_config = json.load(f)
        merged = {**DEFAULT_CONFIG, **user_config}
        return merged
    return dict(DEFAULT_CONFIG)


def _validate_env_vars() -> dict[str, str]:
    env_values: dict[str, str] = {}
    missing: list[str] = []
    for var in REQUIRED_ENV_VARS:
        value = os.getenv(var)
        if not value:
            missing.append(var)
        else:
            env_values[var] = value
    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please set them in your .env file or system environment."
        )
    return env_values


def load_settings() -> Settings:
    env_values = _validate_env_vars()
    config = _load_config_file()

    return Settings(
        gemini_api_key=env_values["GEMINI_API_KEY"],
        standard_model=config.get("standard_model", DEFAULT_CONFIG["standard_model"]),
        deep_model=config.get("deep_model", DEFAULT_CONFIG["deep_model"]),
        request_timeout_seconds=float(
            config.get("request_timeout_seconds", DEFAULT_CONFIG["request_timeout_seconds"])
        ),
        max_pdf_pages=int(config.get("max_pdf_pages", DEFAULT_CONFIG["max_pdf_pages"])),
        max_upload_bytes=int(
            config.get("max_upload_bytes", DEFAULT_CONFIG["max_upload_bytes"])
        ),
        history_file=config.get("history_file", DEFAULT_CONFIG["history_file"]),
        history_capacity=int(
            config.get("history_capacity", DEFAULT_CONFIG["history_capacity"])
        ),
        host=config.get("host", DEFAULT_CONFIG["host"]),
        port=int(config.get("port", DEFAULT_CONFIG["port"])),
        cors_origins=config.get("cors_origins", DEFAULT_CONFIG["cors_origins"]),
        log_file=config.get("log_file", DEFAULT_CONFIG["log_file"]),
        log_level=str(config.get("log_level", DEFAULT_CONFIG["log_level"])),
    )
