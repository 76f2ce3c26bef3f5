from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError

from hostel_api.core.security import verify_token


class TokenDecodeError(Exception):
    """Typed credential failure: ``reason`` is either ``expired`` or ``invalid``"""

    EXPIRED = "expired"
    INVALID = "invalid"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and validate access token"""
    try:
        payload = verify_token(token)
    except ExpiredSignatureError:
        raise TokenDecodeError(TokenDecodeError.EXPIRED)
    except JWTError:
        raise TokenDecodeError(TokenDecodeError.INVALID)

    # Check token type
    if payload.get("type") != "access" or payload.get("sub") is None:
        raise TokenDecodeError(TokenDecodeError.INVALID)

    return payload
