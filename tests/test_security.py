import time

from core.config import settings
from core.security import sign_token, verify_token


def test_round_trip():
    assert verify_token(sign_token(15)) == 15


def test_expired_token(monkeypatch):
    monkeypatch.setattr(settings, "TOKEN_TTL_SECONDS", 60)
    token = sign_token(15, timestamp=int(time.time()) - 120)

    assert verify_token(token) is None


def test_malformed_tokens():
    assert verify_token("") is None
    assert verify_token("15:abc") is None
    assert verify_token("x:1:sig") is None
