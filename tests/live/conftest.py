"""Skip guards for live tests.

Every live test is guarded by a pytest.mark.skipif that checks for the
required environment variable. Tests silently skip when credentials are
absent; they never fail due to missing config.

Required environment variables:
  EPIC_CLIENT_ID       Epic backend-services (non-production) client ID
  PRIVATE_KEY_PATH     Path to the RSA private key whose certificate is
                       registered with the Epic app

Set them in your shell before running:
  export EPIC_CLIENT_ID=your_client_id
  export PRIVATE_KEY_PATH=./privatekey.pem
  pytest tests/live -v -m live
"""

from __future__ import annotations

import os

import pytest

from epic_gateway.config import Settings


def _skip_unless(env_var: str, reason: str | None = None):
    """Return a pytest.mark.skipif that skips when env_var is not set."""
    msg = reason or f"Set {env_var} to run this test"
    return pytest.mark.skipif(not os.environ.get(env_var), reason=msg)


skip_no_epic = _skip_unless("EPIC_CLIENT_ID", "Set EPIC_CLIENT_ID + PRIVATE_KEY_PATH to run Epic sandbox tests")


@pytest.fixture(scope="session")
def epic_settings() -> Settings:
    if not os.environ.get("EPIC_CLIENT_ID") or not os.environ.get("PRIVATE_KEY_PATH"):
        pytest.skip("EPIC_CLIENT_ID and PRIVATE_KEY_PATH not set")
    return Settings.from_env()
