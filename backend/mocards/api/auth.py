"""Authentication API endpoints for administrators and clinics."""
from datetime import datetime, timedelta
import hashlib
import uuid

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from mocards.api.deps import Actor, get_current_actor, get_db, load_actor
from mocards.config import get_settings
from mocards.models.actor import AdminUser, Clinic
from mocards.models.auth import RefreshSession
from mocards.schemas.auth import (
    ActorResponse,
    AdminLogin,
    ClinicLogin,
    MessageResponse,
    Token,
)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token."""
    to_encode = data.copy()
    expire = to_encode.pop("exp", datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days))
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def hash_token_id(token_id: str) -> str:
    """Hash refresh token identifier before persisting."""
    return hashlib.sha256(token_id.encode("utf-8")).hexdigest()


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """Issue secure HttpOnly refresh-token cookie."""
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
        path=settings.refresh_cookie_path,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
    )


def clear_refresh_cookie(response: Response) -> None:
    """Clear refresh-token cookie."""
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.refresh_cookie_path,
        secure=settings.refresh_cookie_secure,
        httponly=True,
        samesite=settings.refresh_cookie_samesite,
    )


def get_request_ip(request: Request) -> str | None:
    """Extract best-effort client IP for session metadata."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def create_refresh_session(
    db: Session,
    actor_type: str,
    actor_id: str,
    request: Request,
    rotated_from_id: str | None = None,
) -> tuple[RefreshSession, str]:
    """Create persisted refresh session + JWT pair."""
    jti = str(uuid.uuid4())
    expires_at_dt = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)

    session = RefreshSession(
        actor_type=actor_type,
        actor_id=actor_id,
        jti_hash=hash_token_id(jti),
        expires_at=expires_at_dt.isoformat(),
        rotated_from_id=rotated_from_id,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_request_ip(request),
    )
    db.add(session)
    db.flush()

    refresh_token = create_refresh_token({"sub": actor_id, "role": actor_type, "jti": jti, "exp": expires_at_dt})
    return session, refresh_token


def revoke_all_actor_sessions(db: Session, actor_type: str, actor_id: str) -> None:
    """Revoke all active refresh sessions for an actor."""
    now = datetime.utcnow().isoformat()
    db.query(RefreshSession).filter(
        RefreshSession.actor_type == actor_type,
        RefreshSession.actor_id == actor_id,
        RefreshSession.revoked_at.is_(None),
    ).update(
        {"revoked_at": now, "last_used_at": now},
        synchronize_session=False,
    )


def _issue_tokens(db: Session, actor_type: str, actor_id: str, request: Request, response: Response) -> Token:
    access_token = create_access_token({"sub": actor_id, "role": actor_type})
    _, refresh_token = create_refresh_session(db, actor_type, actor_id, request)
    db.commit()
    set_refresh_cookie(response, refresh_token)
    return Token(access_token=access_token)


def _invalid_login() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Incorrect credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/admin/login", response_model=Token)
def admin_login(
    credentials: AdminLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Administrator login."""
    admin = db.query(AdminUser).filter(AdminUser.username == credentials.username).first()
    if not admin or not verify_password(credentials.password, admin.password_hash):
        raise _invalid_login()
    return _issue_tokens(db, "admin", admin.id, request, response)


@router.post("/clinic/login", response_model=Token)
def clinic_login(
    credentials: ClinicLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Clinic login with clinic code and password."""
    clinic = db.query(Clinic).filter(
        Clinic.clinic_code == credentials.clinic_code.strip().upper(),
        Clinic.is_active == 1,
    ).first()
    if not clinic or not verify_password(credentials.password, clinic.password_hash):
        raise _invalid_login()
    return _issue_tokens(db, "clinic", clinic.id, request, response)


@router.post("/refresh", response_model=Token)
def refresh_tokens(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Refresh access token using secure cookie refresh token."""
    refresh_cookie = request.cookies.get(settings.refresh_cookie_name)
    if not refresh_cookie:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing refresh token",
        )

    try:
        payload = jwt.decode(
            refresh_cookie,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except JWTError:
        clear_refresh_cookie(response)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    actor_id: str | None = payload.get("sub")
    actor_type: str | None = payload.get("role")
    jti: str | None = payload.get("jti")
    if actor_id is None or actor_type is None or jti is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    session = db.query(RefreshSession).filter(
        RefreshSession.actor_type == actor_type,
        RefreshSession.actor_id == actor_id,
        RefreshSession.jti_hash == hash_token_id(jti),
    ).first()
    if not session or session.revoked_at:
        clear_refresh_cookie(response)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh session",
        )

    try:
        expires_at = datetime.fromisoformat(session.expires_at)
    except ValueError:
        clear_refresh_cookie(response)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh session",
        )
    if expires_at <= datetime.utcnow():
        clear_refresh_cookie(response)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh session expired",
        )

    # Verify actor still exists (and clinic is still active)
    actor = load_actor(db, actor_type, actor_id)
    if actor is None:
        clear_refresh_cookie(response)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )

    now = datetime.utcnow().isoformat()
    session.revoked_at = now
    session.last_used_at = now
    _, new_refresh_token = create_refresh_session(
        db, actor.actor_type, actor.actor_id, request, rotated_from_id=session.id
    )

    access_token = create_access_token({"sub": actor.actor_id, "role": actor.actor_type})
    db.commit()
    set_refresh_cookie(response, new_refresh_token)

    return Token(access_token=access_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Logout and revoke all refresh sessions for the current actor."""
    revoke_all_actor_sessions(db, current_actor.actor_type, current_actor.actor_id)
    db.commit()
    clear_refresh_cookie(response)
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=ActorResponse)
def me(current_actor: Actor = Depends(get_current_actor)):
    """Return the authenticated actor."""
    return ActorResponse(
        actor_type=current_actor.actor_type,
        actor_id=current_actor.actor_id,
        name=current_actor.name,
    )
