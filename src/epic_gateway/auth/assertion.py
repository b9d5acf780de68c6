"""Client assertion (RFC 7523) for Epic's backend services flow.

Epic's backend services flow:
  1. Build a JWT signed with your RSA private key.
  2. POST it to Epic's token endpoint as ``client_assertion``.
  3. Use the returned access token as Bearer on the FHIR API calls.

This module covers step 1.
"""

from __future__ import annotations

import time
import uuid

import jwt

from ..errors import AssertionSigningError
from .credentials import SigningCredential


ASSERTION_LIFETIME_SECONDS = 300  # Epic rejects assertions valid for more than 5 minutes
SIGNING_ALGORITHM = "RS256"


def build_claims(
    credential: SigningCredential,
    audience: str,
    now: int | None = None,
) -> dict[str, object]:
    """Return the claim set for a single assertion."""
    issued_at = int(time.time()) if now is None else now
    return {
        "iss": credential.issuer,
        "sub": credential.client_id,
        "aud": audience,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        "jti": str(uuid.uuid4()),
    }


def build_client_assertion(
    credential: SigningCredential,
    audience: str,
    now: int | None = None,
) -> str:
    """Sign a fresh compact JWT for ``audience`` (the token endpoint URL).

    Args:
        credential: Issuer, client ID and PEM key.
        audience: Token endpoint URL; becomes the ``aud`` claim.
        now: Issue time as Unix seconds. Defaults to the current time.

    Returns:
        The compact, RS256-signed JWT.

    Raises:
        AssertionSigningError: if the key cannot be used for signing.
    """
    claims = build_claims(credential, audience, now)
    try:
        return jwt.encode(claims, credential.private_key, algorithm=SIGNING_ALGORITHM)
    except (ValueError, TypeError, jwt.PyJWTError) as exc:
        raise AssertionSigningError(f"Failed to sign client assertion: {exc}") from exc
