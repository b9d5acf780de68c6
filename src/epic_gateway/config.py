"""Process configuration: one immutable Settings value built at startup.

Values come from the environment (after ``.env`` is loaded with
python-dotenv). The resulting Settings object is passed explicitly into the
auth and FHIR layers; nothing else in the package reads the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError


EPIC_TOKEN_URL     = "https://fhir.epic.com/interconnect-fhir-oauth/oauth2/token"
EPIC_FHIR_R4_URL   = "https://fhir.epic.com/interconnect-fhir-oauth/api/FHIR/R4"
EPIC_FHIR_STU3_URL = "https://fhir.epic.com/interconnect-fhir-oauth/api/FHIR/STU3"

# Epic sandbox test patient (Camila Lopez)
DEFAULT_PATIENT_ID = "erXuFYUfucBZaryVksYEcMg3"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Immutable gateway configuration."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1, description="Epic backend app client ID")
    issuer: str = Field(..., min_length=1, description="JWT iss claim, usually the client ID")
    private_key_path: Path = Field(..., description="PEM-encoded RSA private key")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    token_url: str = Field(default=EPIC_TOKEN_URL)
    r4_base_url: str = Field(default=EPIC_FHIR_R4_URL)
    stu3_base_url: str = Field(default=EPIC_FHIR_STU3_URL)
    default_patient_id: str = Field(default=DEFAULT_PATIENT_ID)
    timeout: float | None = Field(default=30.0, description="Per-request HTTP timeout in seconds")
    download_chunk_size: int = Field(default=64 * 1024, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("log_level", mode="before")
    @classmethod
    def _known_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().upper()
            if value not in LOG_LEVELS:
                raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build Settings from an environment mapping (defaults to os.environ).

        Raises:
            ConfigurationError: if a required variable is missing or a value
                cannot be parsed.
        """
        env = os.environ if environ is None else environ

        client_id = env.get("EPIC_CLIENT_ID") or env.get("CLIENT_ID") or ""
        key_path = env.get("PRIVATE_KEY_PATH") or ""
        missing = [
            name
            for name, value in (("EPIC_CLIENT_ID", client_id), ("PRIVATE_KEY_PATH", key_path))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required environment variable(s): {', '.join(missing)}")

        values: dict[str, object] = {
            "client_id": client_id,
            "issuer": env.get("ISSUER") or client_id,
            "private_key_path": key_path,
        }
        optional = {
            "HOST":                    "host",
            "PORT":                    "port",
            "EPIC_TOKEN_URL":          "token_url",
            "EPIC_FHIR_URL":           "r4_base_url",
            "EPIC_FHIR_STU3_URL":      "stu3_base_url",
            "EPIC_DEFAULT_PATIENT_ID": "default_patient_id",
            "HTTP_TIMEOUT":            "timeout",
            "DOWNLOAD_CHUNK_SIZE":     "download_chunk_size",
            "LOG_LEVEL":               "log_level",
        }
        for var, field in optional.items():
            if env.get(var):
                values[field] = env[var]

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load ``.env`` (if present) into the environment, then build Settings."""
    load_dotenv(env_file)
    return Settings.from_env()


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level.upper() if isinstance(level, str) else level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
        force=True,
    )
    return logging.getLogger("epic_gateway")
