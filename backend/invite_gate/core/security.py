from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from invite_gate.core.config import settings
from invite_gate.core.errors import AdminErrorCode

bearer_scheme = HTTPBearer(auto_error=False)

# Hard guard: never allow the default secret in production-like envs
if settings.is_prod and settings.jwt_secret in {"supersecret", "changeme", "secret", ""}:
    raise RuntimeError(
        "Insecure JWT_SECRET configured in production environment. "
        "Set a strong random secret via the JWT_SECRET env var."
    )


def _http_401(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str) -> dict:
    """
    Decode an admin bearer token using settings.jwt_secret/jwt_algorithm.
    Raises 401 on any error.
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise _http_401("Invalid or expired token")


def create_admin_token(
    subject: str,
    realm: str,
    roles: list[str],
    expires_minutes: int = 60,
) -> str:
    """Mint a token in the shape get_admin_context() expects (dev tooling, tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {"sub": subject, "realm": realm, "roles": list(roles), "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@dataclass
class AdminContext:
    subject: str
    realm: str
    roles: list[str] = field(default_factory=list)

    def has_realm_role(self, role: str) -> bool:
        return role in self.roles


def get_admin_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AdminContext:
    if credentials is None or not credentials.credentials:
        raise _http_401("Not authenticated")

    payload = decode_jwt(credentials.credentials)

    subject = payload.get("sub")
    realm = payload.get("realm")
    if not subject or not realm:
        raise _http_401("Invalid token payload")

    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        raise _http_401("Invalid token payload")

    return AdminContext(subject=str(subject), realm=str(realm), roles=[str(r) for r in roles])


def require_realm_admin(ctx: AdminContext, realm: str) -> None:
    """
    Raise 403 unless the caller administers `realm`.
    """
    if ctx.realm != realm or not ctx.has_realm_role(settings.admin_role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": AdminErrorCode.FORBIDDEN_REALM_ADMIN_ONLY.value,
                "message": "Only realm administrators can manage invitations.",
            },
        )
