"""Shared API dependencies: database session and authenticated actor."""
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from mocards.config import get_settings
from mocards.database import get_db
from mocards.models.actor import AdminUser, Clinic

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)

ACTOR_TYPES = ("admin", "clinic")


@dataclass
class Actor:
    """Authenticated caller resolved for a single request."""

    actor_type: str
    actor_id: str
    name: str


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def load_actor(db: Session, actor_type: str, actor_id: str) -> Actor | None:
    """Resolve an actor record; inactive clinics do not resolve."""
    if actor_type == "admin":
        admin = db.query(AdminUser).filter(AdminUser.id == actor_id).first()
        if admin:
            return Actor(actor_type="admin", actor_id=admin.id, name=admin.username)
    elif actor_type == "clinic":
        clinic = db.query(Clinic).filter(Clinic.id == actor_id, Clinic.is_active == 1).first()
        if clinic:
            return Actor(actor_type="clinic", actor_id=clinic.id, name=clinic.clinic_name)
    return None


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """Decode the bearer access token and load its actor."""
    if credentials is None:
        raise _credentials_exception("Not authenticated")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        raise _credentials_exception()

    if payload.get("type") != "access":
        raise _credentials_exception("Invalid token type")

    actor_id: str | None = payload.get("sub")
    actor_type: str | None = payload.get("role")
    if actor_id is None or actor_type not in ACTOR_TYPES:
        raise _credentials_exception()

    actor = load_actor(db, actor_type, actor_id)
    if actor is None:
        raise _credentials_exception()
    return actor


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.actor_type != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return actor


def require_clinic(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.actor_type != "clinic":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Clinic access required")
    return actor
