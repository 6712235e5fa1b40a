"""Token-based identity for the ledger API."""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from kakeibo.engine.logging import setup_logger

from . import crud, database, models

LOG = setup_logger(__name__)

BEARER_PREFIX = "bearer "


def issue_token() -> str:
    return secrets.token_urlsafe(32)


def create_user(session: Session, email: str) -> models.User:
    """Register a user with a fresh API token.

    Raises:
      crud.EntityConflictError: If the email is already registered.
    """

    normalised = email.strip().lower()
    existing = session.scalar(select(models.User).where(models.User.email == normalised))
    if existing is not None:
        raise crud.EntityConflictError(f"User {normalised} already exists")
    user = models.User(email=normalised, api_token=issue_token())
    session.add(user)
    session.flush()
    session.refresh(user)
    LOG.info("Registered user %s", normalised, extra={"user_id": user.id})
    return user


def get_user_by_email(session: Session, email: str) -> models.User:
    user = session.scalar(select(models.User).where(models.User.email == email.strip().lower()))
    if user is None:
        raise crud.EntityNotFoundError(f"User {email} not found")
    return user


def authenticate(session: Session, token: Optional[str]) -> Optional[models.User]:
    """Return the user owning ``token``, or ``None`` when it is unknown."""

    if not token:
        return None
    return session.scalar(select(models.User).where(models.User.api_token == token))


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(database.get_db),
) -> models.User:
    """FastAPI dependency resolving the bearer token to a user (401 otherwise)."""

    user = authenticate(db, _bearer_token(authorization))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
