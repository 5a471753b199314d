"""Password hashing and signed session tokens."""

import logging
from dataclasses import dataclass

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

TOKEN_SALT = 'gymhub-session'


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


@dataclass(frozen=True)
class Principal:
    """Authenticated caller of a request."""

    id: str
    role: str
    status: str | None = None

    def to_dict(self) -> dict:
        return {'id': self.id, 'role': self.role, 'status': self.status}


class AuthProvider:
    """Issues and verifies signed, expiring session tokens."""

    def __init__(self, secret_key: str, ttl_seconds: int = 86400):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self.ttl_seconds = ttl_seconds

    def issue_token(self, principal: Principal) -> str:
        """Issue a token for the given principal."""
        return self._serializer.dumps(
            {'sub': principal.id, 'role': principal.role, 'status': principal.status}
        )

    def verify_token(self, token: str) -> Principal | None:
        """Return the principal encoded in a token, or None if invalid or expired."""
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.ttl_seconds)
        except SignatureExpired:
            return None
        except BadSignature as e:
            logger.warning(f'Rejected session token: {e}')
            return None

        if not isinstance(data, dict) or not data.get('sub') or not data.get('role'):
            return None
        return Principal(id=str(data['sub']), role=str(data['role']), status=data.get('status'))

    def resolve(self, authorization: str | None) -> Principal | None:
        """Resolve an ``Authorization`` header value to a principal."""
        if not authorization:
            return None
        scheme, _, token = authorization.partition(' ')
        if scheme.lower() != 'bearer':
            return None
        return self.verify_token(token.strip())
