from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt


def create_access_token(
    *,
    subject: str,
    secret: str,
    alg: str,
    expires_minutes: int,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """Sign a bearer token for a staff user id.

    Tokens are issued outside this service (or by tests); the API only
    verifies them.
    """
    issued = datetime.now(timezone.utc)
    claims: Dict[str, Any] = dict(extra or {})
    claims.update(
        sub=subject,
        iat=int(issued.timestamp()),
        exp=int((issued + timedelta(minutes=expires_minutes)).timestamp()),
    )
    return jwt.encode(claims, secret, algorithm=alg)


def decode_access_token(token: str, *, secret: str, alg: str) -> Dict[str, Any]:
    return jwt.decode(token, secret, algorithms=[alg])


def user_id_from_token(token: str, *, secret: str, alg: str) -> int:
    """Return the ``sub`` claim as a user id; raise ``JWTError`` when unusable."""
    payload = decode_access_token(token, secret=secret, alg=alg)
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise JWTError("Token subject is not a user id")
    return int(subject)
