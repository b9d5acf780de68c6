from .assertion import build_client_assertion
from .credentials import SigningCredential, load_signing_credential
from .token_client import AccessToken, TokenExchangeClient

__all__ = [
    "AccessToken",
    "SigningCredential",
    "TokenExchangeClient",
    "build_client_assertion",
    "load_signing_credential",
]
