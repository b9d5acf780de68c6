from .app import build_gateway, create_app
from .envelope import Envelope

__all__ = ["Envelope", "build_gateway", "create_app"]
