"""Credential checks and session tokens.

Passwords are hashed with Werkzeug; the session cookie carries a
timestamped itsdangerous signature of the username instead of the bare
name, so a token can be validated (and expired) without a server-side
session table.
"""
from dataclasses import dataclass
from typing import Optional

import structlog
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from ledger.errors import UserExists, ValidationError
from ledger.store import commit
from models import db, User

logger = structlog.get_logger(__name__)

SESSION_SALT = 'budget-session'


@dataclass(frozen=True)
class Identity:
    """The authenticated user a request acts on behalf of."""
    username: str


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


class SessionTokens:
    def __init__(self, secret_key: str, max_age: int = 86400):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SESSION_SALT)
        self.max_age = max_age

    def issue(self, username: str) -> str:
        return self._serializer.dumps({'username': username})

    def validate(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        try:
            payload = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            logger.info('session_expired')
            return None
        except BadSignature:
            logger.warning('session_token_rejected')
            return None
        username = payload.get('username') if isinstance(payload, dict) else None
        return Identity(username) if username else None


def register_user(username, password) -> User:
    username = (username or '').strip()
    if not username or not password:
        raise ValidationError('Username and password are required')
    if User.query.filter_by(username=username).first():
        raise UserExists('User with this username already exists')
    user = User(username=username, password_hash=hash_password(password))
    db.session.add(user)
    commit()
    logger.info('user_registered', username=username)
    return user


def authenticate(username, password) -> Optional[User]:
    user = User.query.filter_by(username=(username or '').strip()).first()
    if not user or not verify_password(password or '', user.password_hash):
        logger.info('login_failed', username=username)
        return None
    return user
