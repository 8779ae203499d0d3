"""
Configuration Module

Settings for the completion service and the session store, read from the
environment (and a local .env file when present).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return raw.lower() in TRUE_VALUES


@dataclass
class Settings:
    """Runtime settings for query generation, summarization and execution"""
    openai_api_key: str = ""
    model: str = "gpt-4o-mini"

    # Azure OpenAI is used whenever an endpoint is configured
    azure_endpoint: str = ""
    azure_api_key: str = ""
    azure_api_version: str = "2024-06-01"

    sql_max_tokens: int = 200
    sql_temperature: float = 0.7
    summary_max_tokens: int = 150
    summary_temperature: float = 0.3
    llm_timeout: float = 30.0

    read_only: bool = False
    strategy: str = "single-domain"

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_endpoint)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv_path: Optional .env file to load first (defaults to the
                nearest .env found by python-dotenv)

        Returns:
            Settings instance
        """
        load_dotenv(dotenv_path=dotenv_path)

        model = os.getenv("OPENAI_MODEL") or os.getenv("AZURE_OPENAI_MODEL") or cls.model
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            model=model.strip(),
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", "").strip().rstrip("/"),
            azure_api_key=os.getenv("AZURE_OPENAI_API_KEY", "").strip(),
            azure_api_version=os.getenv("AZURE_OPENAI_API_VERSION", cls.azure_api_version).strip(),
            sql_max_tokens=_get_int("SQL_MAX_TOKENS", cls.sql_max_tokens),
            sql_temperature=_get_float("SQL_TEMPERATURE", cls.sql_temperature),
            summary_max_tokens=_get_int("SUMMARY_MAX_TOKENS", cls.summary_max_tokens),
            summary_temperature=_get_float("SUMMARY_TEMPERATURE", cls.summary_temperature),
            llm_timeout=_get_float("LLM_TIMEOUT", cls.llm_timeout),
            read_only=_get_bool("READ_ONLY_SQL", cls.read_only),
            strategy=os.getenv("DEFAULT_STRATEGY", cls.strategy).strip() or cls.strategy,
        )
