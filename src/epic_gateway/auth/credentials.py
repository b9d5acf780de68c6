"""Signing credential loaded once at process start."""

from __future__ import annotations

import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ConfigurationError


logger = logging.getLogger(__name__)

MIN_RSA_KEY_BITS = 2048


class SigningCredential(BaseModel):
    """Issuer/client identifiers plus the PEM private key used to sign assertions."""

    model_config = ConfigDict(frozen=True)

    issuer: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    private_key: str = Field(..., repr=False, description="PEM-encoded RSA private key")

    @classmethod
    def from_pem(cls, issuer: str, client_id: str, pem: str | bytes) -> "SigningCredential":
        """Validate ``pem`` as an unencrypted RSA key of at least 2048 bits.

        Raises:
            ConfigurationError: if the key cannot be parsed, is not RSA, or is too short.
        """
        pem_bytes = pem.encode("utf-8") if isinstance(pem, str) else pem
        try:
            key = serialization.load_pem_private_key(pem_bytes, password=None)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(f"Private key is not a valid unencrypted PEM key: {exc}") from exc

        if not isinstance(key, rsa.RSAPrivateKey):
            raise ConfigurationError("Private key must be an RSA key for RS256 signing")
        if key.key_size < MIN_RSA_KEY_BITS:
            raise ConfigurationError(
                f"RSA private key is {key.key_size} bits; at least {MIN_RSA_KEY_BITS} required"
            )

        return cls(issuer=issuer, client_id=client_id, private_key=pem_bytes.decode("utf-8"))


def load_signing_credential(
    issuer: str,
    client_id: str,
    private_key_path: str | Path,
) -> SigningCredential:
    """Read and validate the private key file.

    Raises:
        ConfigurationError: if the file is missing or unreadable, or holds an unusable key.
    """
    path = Path(private_key_path)
    try:
        pem = path.read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read private key file {path}: {exc}") from exc

    credential = SigningCredential.from_pem(issuer=issuer, client_id=client_id, pem=pem)
    logger.info("Loaded signing key from %s for client %s", path, client_id)
    return credential
