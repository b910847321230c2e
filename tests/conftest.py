import os

# Settings are read at import time of jobly.main; keep tests offline and fast.
os.environ.setdefault("JOBLY_OTEL_ENABLED", "false")
os.environ.setdefault("JOBLY_BCRYPT_ROUNDS", "4")
os.environ.setdefault("JOBLY_SECRET_KEY", "test-secret")

import pytest  # noqa: E402

from jobly.core.security import create_token  # noqa: E402


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(username='admin', is_admin=True)}"}


@pytest.fixture
def u1_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(username='u1', is_admin=False)}"}
