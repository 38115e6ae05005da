"""
Runtime configuration.

All secrets and tunables are read once into a :class:`Settings` object which
is then handed to every component.  Nothing in the package reads the
environment after start-up.

Required variables:

* ``SHEETSCRIBE_PRIVATE_KEY`` – service-account private key (PEM).  Literal
  ``\\n`` sequences are converted to newlines so the key can live on one line.
* ``SHEETSCRIBE_CLIENT_EMAIL`` – service-account issuer email.
* ``SHEETSCRIBE_PROJECT_ID`` – Google Cloud project identifier.
* ``OPENAI_API_KEY`` – API key for the chat completion endpoint.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_OPENAI_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4-0613"

REQUIRED_VARIABLES = (
    "SHEETSCRIBE_PRIVATE_KEY",
    "SHEETSCRIBE_CLIENT_EMAIL",
    "SHEETSCRIBE_PROJECT_ID",
    "OPENAI_API_KEY",
)


class ConfigError(ValueError):
    """Raised when required configuration is missing or malformed."""


@dataclass(frozen=True)
class Columns:
    """Sheet column letters for each row field."""

    uri: str = "A"
    handle: str = "B"
    transcript: str = "C"
    summary: str = "G"
    rank: str = "H"
    insight: str = "I"

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "Columns":
        values = {}
        for name in cls.__dataclass_fields__:
            letter = environ.get(f"SHEETSCRIBE_COLUMN_{name.upper()}")
            if letter:
                letter = letter.strip().upper()
                if not letter.isalpha():
                    raise ConfigError(f"Invalid column letter for {name}: {letter!r}")
                values[name] = letter
        return cls(**values)


@dataclass(frozen=True)
class Settings:
    private_key: str
    client_email: str
    project_id: str
    openai_api_key: str
    spreadsheet_id: Optional[str] = None
    sheet_name: str = "Sheet1"
    openai_model: str = DEFAULT_MODEL
    openai_endpoint: str = DEFAULT_OPENAI_ENDPOINT
    language_code: str = "en-US"
    token_url: str = DEFAULT_TOKEN_URL
    calls_per_second: float = 2.0
    max_attempts: int = 1
    http_timeout: float = 60.0
    columns: Columns = field(default_factory=Columns)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ConfigError: If a required variable is missing or a numeric
                variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_VARIABLES if not env.get(name)]
        if missing:
            raise ConfigError("Missing required configuration: " + ", ".join(missing))
        try:
            calls_per_second = float(env.get("SHEETSCRIBE_CALLS_PER_SECOND", "2"))
            max_attempts = int(env.get("SHEETSCRIBE_MAX_ATTEMPTS", "1"))
            http_timeout = float(env.get("SHEETSCRIBE_HTTP_TIMEOUT", "60"))
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric setting: {exc}") from exc
        if calls_per_second <= 0:
            raise ConfigError("SHEETSCRIBE_CALLS_PER_SECOND must be positive")
        if max_attempts < 1:
            raise ConfigError("SHEETSCRIBE_MAX_ATTEMPTS must be at least 1")
        return cls(
            private_key=env["SHEETSCRIBE_PRIVATE_KEY"].replace("\\n", "\n"),
            client_email=env["SHEETSCRIBE_CLIENT_EMAIL"],
            project_id=env["SHEETSCRIBE_PROJECT_ID"],
            openai_api_key=env["OPENAI_API_KEY"],
            spreadsheet_id=env.get("SHEETSCRIBE_SPREADSHEET_ID") or None,
            sheet_name=env.get("SHEETSCRIBE_SHEET_NAME", "Sheet1"),
            openai_model=env.get("OPENAI_MODEL", DEFAULT_MODEL),
            openai_endpoint=env.get("OPENAI_ENDPOINT", DEFAULT_OPENAI_ENDPOINT),
            language_code=env.get("SPEECH_LANGUAGE_CODE", "en-US"),
            token_url=env.get("SHEETSCRIBE_TOKEN_URL", DEFAULT_TOKEN_URL),
            calls_per_second=calls_per_second,
            max_attempts=max_attempts,
            http_timeout=http_timeout,
            columns=Columns.from_env(env),
        )
