import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def clean_otp_env(monkeypatch):
    """Keep developer OTP_* variables out of the tests."""
    for name in ("OTP_DIGITS", "OTP_HASH", "OTP_TIME_STEP", "OTP_EPOCH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def app():
    from backend.app import create_app

    app = create_app({})
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
