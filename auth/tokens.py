from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse

import jwt

from utils.time_utils import utcnow

JWT_ALGORITHM = "HS256"
TOKEN_PARAM = "tkn"


class TokenError(Exception):
    """The confirmation token is missing, malformed, tampered with or expired."""


def create_token(email_address: str, secret: str, ttl: timedelta, now: Optional[datetime] = None) -> str:
    """Signs a confirmation token carrying the email address as its subject."""
    now = now or utcnow()
    payload = {
        "sub": email_address.strip().lower(),
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret: str) -> str:
    """Returns the email address the token was issued for."""
    if not token:
        raise TokenError("missing token")
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError as e:
        raise TokenError("token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError(f"invalid token: {e}") from e
    return payload["sub"]


def confirmation_url(base_url: str, token: str) -> str:
    """Appends the token as the `tkn` query parameter, keeping any existing parameters."""
    parts = urlparse(base_url)
    query = parse_qsl(parts.query)
    query.append((TOKEN_PARAM, token))
    return urlunparse(parts._replace(query=urlencode(sorted(query))))
