"""
Password credentials, JWT session tokens and role-gating dependencies.

Stored credentials carry an explicit format tag:

  - HASHED: bcrypt hash, the only format written by this service
  - LEGACY: plaintext secret inherited from the pre-hashing store

A LEGACY credential is still accepted at login, after which the auth service
rewrites it as HASHED (see auth_service.authenticate_user). The rewrite is
conditioned on the row still being LEGACY, so repeating it is a no-op.
"""

import enum
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from partypass.core.config import get_settings
from partypass.core.exceptions import Forbidden, Unauthorized, ValidationFailed

settings = get_settings()

_bearer = HTTPBearer(auto_error=False)


class CredentialFormat(str, enum.Enum):
    LEGACY = "legacy"
    HASHED = "hashed"


@dataclass(frozen=True)
class HashedCredential:
    value: str
    format = CredentialFormat.HASHED
    needs_upgrade = False

    def verify(self, password: str) -> bool:
        return verify_password(password, self.value)


@dataclass(frozen=True)
class LegacyCredential:
    value: str
    format = CredentialFormat.LEGACY
    needs_upgrade = True

    def verify(self, password: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), self.value.encode("utf-8"))


Credential = Union[HashedCredential, LegacyCredential]


def load_credential(credential_format: str, value: str) -> Credential:
    """Wrap a stored password column in the variant named by its format tag."""
    fmt = CredentialFormat(credential_format)
    if fmt is CredentialFormat.LEGACY:
        return LegacyCredential(value)
    return HashedCredential(value)


BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    secret = password.encode("utf-8")
    # Older bcrypt releases truncate silently past 72 bytes, newer ones raise
    if len(secret) > BCRYPT_MAX_BYTES:
        raise ValidationFailed("Password is too long")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


@dataclass(frozen=True)
class Principal:
    """The caller identity carried by a session token."""

    id: int
    role: str
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token. `data` must hold id, role and name; `sub` is derived
    from id. Expiry defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {**data, "sub": str(data["id"]), "iat": now, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Principal(id=int(payload["id"]), role=str(payload["role"]), name=str(payload.get("name", "")))
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Missing authorization")
    return decode_access_token(credentials.credentials)


async def get_current_user_id(user: Principal = Depends(get_current_user)) -> int:
    return user.id


def require_roles(*roles: str):
    """Dependency factory: authenticated caller whose role is one of `roles`."""

    async def dependency(user: Principal = Depends(get_current_user)) -> Principal:
        if roles and user.role not in roles:
            raise Forbidden("Forbidden")
        return user

    return dependency


require_admin = require_roles("admin")
require_seller = require_roles("seller")
require_member = require_roles("admin", "seller")


def ensure_self_or_admin(user: Principal, seller_id: int) -> None:
    if not user.is_admin and user.id != seller_id:
        raise Forbidden("Forbidden")
