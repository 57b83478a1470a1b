import hmac
import hashlib
import time
from typing import Optional

from core.config import settings
from core.logger import logger


def sign_token(user_id: int, timestamp: Optional[int] = None) -> str:
    """
    Produce a token in the issuer's format: {user_id}:{timestamp}:{signature}.
    Used by scripts and tests; production tokens come from the auth service.
    """
    ts = int(timestamp if timestamp is not None else time.time())
    data = f"{user_id}:{ts}"
    signature = hmac.new(settings.AUTH_SECRET.encode(), data.encode(), hashlib.sha256).hexdigest()
    return f"{data}:{signature}"


def verify_token(token: str) -> Optional[int]:
    """
    Verify a signed token and return the user id, or None.
    Format: {user_id}:{timestamp}:{signature}
    """
    if not token:
        return None

    parts = token.split(':')
    if len(parts) != 3:
        return None

    user_id_str, timestamp_str, signature = parts
    if not user_id_str.isdigit() or not timestamp_str.isdigit():
        return None

    # Check expiration
    if int(time.time()) - int(timestamp_str) > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user_id=user_id_str)
        return None

    data = f"{user_id_str}:{timestamp_str}"
    expected_signature = hmac.new(settings.AUTH_SECRET.encode(), data.encode(), hashlib.sha256).hexdigest()

    if hmac.compare_digest(expected_signature, signature):
        return int(user_id_str)

    logger.warning("Token signature mismatch", user_id=user_id_str)
    return None
