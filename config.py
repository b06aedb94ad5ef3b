# config.py - Environment configuration
"""
App configuration (env-only; no hardcoded secrets).
Values come from the shell or a local .env file.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

PLACEHOLDER_API_KEY = "your_groq_api_key_here"


@dataclass(frozen=True)
class Settings:
    groq_api_key: str
    groq_model: str
    groq_base_url: str
    chat_temperature: float
    chat_max_tokens: int
    chat_timeout_seconds: float
    report_delay_seconds: float
    port: int
    debug: bool
    log_level: str

    @property
    def assistant_configured(self) -> bool:
        return bool(self.groq_api_key) and self.groq_api_key != PLACEHOLDER_API_KEY


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """Read settings from the environment (re-read on every call)"""
    return Settings(
        groq_api_key=(os.getenv("GROQ_API_KEY") or "").strip(),
        groq_model=os.getenv("GROQ_MODEL") or "llama-3.3-70b-versatile",
        groq_base_url=os.getenv("GROQ_BASE_URL") or "https://api.groq.com/openai/v1",
        chat_temperature=float(os.getenv("CHAT_TEMPERATURE") or "0.5"),
        chat_max_tokens=int(os.getenv("CHAT_MAX_TOKENS") or "500"),
        chat_timeout_seconds=float(os.getenv("CHAT_TIMEOUT_SECONDS") or "30"),
        report_delay_seconds=float(os.getenv("REPORT_DELAY_SECONDS") or "1.4"),
        port=int(os.getenv("BIOMATCH_PORT") or "5001"),
        debug=_env_bool("BIOMATCH_DEBUG"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
