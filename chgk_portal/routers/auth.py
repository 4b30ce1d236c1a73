"""
Authentication router — email/password viewer accounts (JWT cookie) and
the shared-password host gate (signed session cookie).

Endpoints:
    POST /auth/register      → create a viewer account and sign in
    POST /auth/login         → viewer sign-in
    POST /auth/host-login    → moderator sign-in with the shared password
    GET  /auth/session       → current role
    GET  /auth/logout        → back to guest
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chgk_portal.config import settings
from chgk_portal.database import get_db
from chgk_portal.dependencies import require_db
from chgk_portal.models.user import User
from chgk_portal.schemas.user import HostLogin, SessionOut, UserCreate, UserLogin
from chgk_portal.services import profiles
from chgk_portal.session import Role, SessionError, SessionState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

COOKIE_KEY = "access_token"
HOST_SESSION_KEY = "is_host"


# ═══════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict) -> str:
    """Create a signed JWT with an expiry claim."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _set_auth_cookie(response, user_id: int):
    """Attach the JWT cookie to a response. It outlives the browser session."""
    token = create_access_token({"sub": str(user_id)})
    response.set_cookie(
        key=COOKIE_KEY,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
    )
    return response


async def get_current_user(
    request: Request,
    db: Optional[AsyncSession] = Depends(get_db),
) -> Optional[User]:
    """
    Extract the JWT from the cookie, decode it, and return the User.
    Returns None when no valid token is present (allows public pages).
    """
    token = request.cookies.get(COOKIE_KEY)
    if not token or db is None:
        return None
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id: int = int(payload.get("sub", 0))
        if not user_id:
            return None
    except (JWTError, ValueError):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_session_state(
    request: Request,
    current_user: Optional[User] = Depends(get_current_user),
) -> SessionState:
    """Resolve the caller's role: host grant first, then viewer identity."""
    if request.session.get(HOST_SESSION_KEY):
        return SessionState(role=Role.ADMIN)
    if current_user is not None:
        return SessionState.restore(current_user.id, current_user.email)
    return SessionState()


async def require_viewer(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return current_user


async def require_admin(state: SessionState = Depends(get_session_state)) -> SessionState:
    if not state.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Host access required")
    return state


def _session_body(state: SessionState) -> dict:
    return SessionOut(role=state.role, user_id=state.user_id, email=state.email).model_dump(by_alias=True, mode="json")


# ═══════════════════════════════════════════════════════════════
#  Viewer accounts
# ═══════════════════════════════════════════════════════════════

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    state: SessionState = Depends(get_session_state),
    db: AsyncSession = Depends(require_db),
):
    """Create a viewer account; name and telegram, if given, seed the profile."""
    if state.role != Role.GUEST:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Log out first")

    user = User(email=str(data.email).lower(), password_hash=hash_password(data.password))
    try:
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    seed = {k: v for k, v in {"full_name": data.full_name, "telegram": data.telegram}.items() if v}
    if seed:
        await profiles.upsert(db, user.id, seed)

    logger.info(f"Registered viewer {user.id}")
    state.sign_in(user.id, user.email)
    response = JSONResponse(_session_body(state), status_code=status.HTTP_201_CREATED)
    return _set_auth_cookie(response, user.id)


@router.post("/login")
async def login(
    data: UserLogin,
    state: SessionState = Depends(get_session_state),
    db: AsyncSession = Depends(require_db),
):
    if state.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Log out first")

    result = await db.execute(select(User).where(User.email == str(data.email).lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    state = SessionState().sign_in(user.id, user.email)
    response = JSONResponse(_session_body(state))
    return _set_auth_cookie(response, user.id)


# ═══════════════════════════════════════════════════════════════
#  Host gate
# ═══════════════════════════════════════════════════════════════

@router.post("/host-login")
async def host_login(
    data: HostLogin,
    request: Request,
    state: SessionState = Depends(get_session_state),
):
    """Grant host access for this browser session when the shared password matches."""
    try:
        granted = state.admin_login(data.password, settings.HOST_PASSWORD)
    except SessionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not granted:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Wrong host password")

    request.session[HOST_SESSION_KEY] = True
    return _session_body(state)


# ═══════════════════════════════════════════════════════════════
#  Session / logout
# ═══════════════════════════════════════════════════════════════

@router.get("/session")
async def read_session(state: SessionState = Depends(get_session_state)):
    return _session_body(state)


@router.get("/logout")
async def logout(request: Request):
    """Clear both the viewer cookie and the host grant."""
    request.session.clear()
    response = JSONResponse(_session_body(SessionState().logout()))
    response.delete_cookie(key=COOKIE_KEY)
    return response
