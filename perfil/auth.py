"""Session tokens and request authentication.

Tokens are HS256 JWTs carrying the user id in `sub`. They travel either in
an `Authorization: Bearer` header or in the `auth-token` cookie. Flask-Login
resolves them per request through `optional_auth`.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .config import is_production
from .models import db, User

COOKIE_NAME = 'auth-token'
TOKEN_TTL = timedelta(hours=24)


class TokenSigner:
    """Issues and verifies session tokens with a single process-wide secret."""

    algorithm = 'HS256'

    def __init__(self, secret, ttl=TOKEN_TTL):
        if not secret:
            raise RuntimeError('Missing JWT_SECRET environment variable')
        self._secret = secret
        self.ttl = ttl

    def issue(self, user_id):
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'iat': now,
            'exp': now + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token):
        """Return the claims, or None if the token is expired, malformed or forged."""
        try:
            return jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            return None


@dataclass(frozen=True)
class Identity:
    id: int
    email: str
    name: Optional[str] = None

    @classmethod
    def from_user(cls, user):
        return cls(id=user.id, email=user.email, name=user.name)


def extract_token(request):
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        token = header[len('Bearer '):].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME) or None


def optional_auth(request, tokens):
    """Load the user behind the request's token, or None.

    The user row is always re-read so a token outliving its user grants
    nothing.
    """
    token = extract_token(request)
    if not token:
        return None
    claims = tokens.verify(token)
    if not claims or not claims.get('sub'):
        return None
    try:
        user_id = int(claims['sub'])
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def current_identity(user):
    """Identity for an authenticated Flask-Login user, else None."""
    if user is None or not user.is_authenticated:
        return None
    return Identity.from_user(user)


# ─── Cookie ───────────────────────────────────────────────────────────

def _cookie_options(config):
    production = is_production(config)
    return {
        'path': '/',
        'httponly': False,
        'samesite': 'Strict',
        'secure': production,
        'domain': config.get('COOKIE_DOMAIN') if production else None,
    }


def set_auth_cookie(response, token, config):
    response.set_cookie(COOKIE_NAME, token, max_age=int(TOKEN_TTL.total_seconds()),
                        **_cookie_options(config))
    return response


def clear_auth_cookie(response, config):
    response.set_cookie(COOKIE_NAME, '', max_age=0, expires=0, **_cookie_options(config))
    return response
