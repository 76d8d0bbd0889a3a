"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for authentication and authorization.
All routers import from here instead of defining their own auth logic.

Business Rules:
- A bearer token is resolved to a subject id by the identity provider
- get_subject / get_optional_user return None when not signed in (non-throwing)
- require_subject raises 401 without a valid token
- require_user raises 404 when the subject has no registered user row
- require_admin raises 403 unless user.is_admin
- require_self raises 403 when acting on another user's resources

Called by: all routers
Depends on: models, database, services/identity_service
"""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .services import identity_service


# ── Authentication ────────────────────────────────────────────────────


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_subject(request: Request) -> str | None:
    """Return the identity-provider subject for the request, or None."""
    token = bearer_token(request)
    if not token:
        return None
    return await identity_service.fetch_subject(token)


def require_subject(subject: str | None = Depends(get_subject)) -> str:
    """Dependency: raises 401 if the request carries no valid session."""
    if not subject:
        raise HTTPException(401, "No autorizado")
    return subject


def get_user(db: Session, subject: str | None) -> User | None:
    """Map a subject id to its user row."""
    if not subject:
        return None
    return db.query(User).filter_by(external_id=subject).first()


def get_optional_user(
    subject: str | None = Depends(get_subject), db: Session = Depends(get_db)
) -> User | None:
    """Dependency: current user or None for anonymous callers."""
    return get_user(db, subject)


def require_user(subject: str = Depends(require_subject), db: Session = Depends(get_db)) -> User:
    """Dependency: raises 401 if not signed in, 404 if not registered."""
    user = get_user(db, subject)
    if not user:
        raise HTTPException(404, "Usuario no encontrado")
    return user


def is_admin(user: User) -> bool:
    return bool(user.is_admin)


def require_admin(user: User = Depends(require_user)) -> User:
    """Dependency: raises 403 if user is not an admin."""
    if not is_admin(user):
        raise HTTPException(403, "Se requieren permisos de administrador")
    return user


# ── Ownership ─────────────────────────────────────────────────────────


def require_self(user: User, user_id: int) -> None:
    if user.id != user_id:
        raise HTTPException(403, "No autorizado")
