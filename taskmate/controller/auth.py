import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import APIRouter, Depends, status, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from taskmate.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, FRONTEND_URL
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.identity import Identity
from taskmate.schemas.auth import TokenData, UserResponse
from taskmate.service import github_oauth
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("auth")

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/github", auto_error=False)

GITHUB_PROVIDER = "github"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def token_for_user(user: User) -> str:
    return create_access_token({"sub": str(user.user_id)})


def get_user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        token_data = TokenData(user_id=int(subject))
    except (JWTError, ValueError):
        return None
    return db.query(User).filter(User.user_id == token_data.user_id).first()


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    user = get_user_from_token(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    return get_user_from_token(token, db)


def verify_github_user(db: Session, profile: dict, access_token: str) -> User:
    """
    Find or create the user behind a GitHub profile.

    A known identity gets its access token, link time and the user's last
    login refreshed; an unknown one creates a user and then the identity
    holding the raw profile.
    """
    now = datetime.now(timezone.utc)
    provider_user_id = str(profile["id"])

    identity = db.query(Identity).filter(
        Identity.provider == GITHUB_PROVIDER,
        Identity.provider_user_id == provider_user_id,
    ).first()

    if identity:
        identity.access_token_encrypted = access_token
        identity.linked_at = now
        user = identity.user
        user.last_login_at = now
        db.commit()
        db.refresh(user)
        return user

    user = User(
        username=profile.get("login"),
        first_name=profile.get("name"),
        avatar_url=profile.get("avatar_url"),
        last_login_at=now,
    )
    db.add(user)
    db.flush()

    db.add(Identity(
        user_id=user.user_id,
        provider=GITHUB_PROVIDER,
        provider_user_id=provider_user_id,
        provider_username=profile.get("login"),
        avatar_url=profile.get("avatar_url"),
        access_token_encrypted=access_token,
        profile_json=profile,
        linked_at=now,
    ))
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.user_id} for GitHub login {profile.get('login')}")
    return user


@router.get("/github")
async def github_login():
    return RedirectResponse(github_oauth.authorize_url(github_oauth.create_state()))


@router.get("/github/callback")
async def github_callback(code: Optional[str] = None, state: Optional[str] = None, db: Session = Depends(get_db)):
    failed_url = f"{FRONTEND_URL}/login?auth=failed"
    if not code or not github_oauth.verify_state(state):
        logger.warning("GitHub callback without a valid code/state")
        return RedirectResponse(failed_url)

    try:
        loop = asyncio.get_event_loop()
        profile, access_token = await loop.run_in_executor(None, github_oauth.sign_in, code)
        user = verify_github_user(db, profile, access_token)
    except github_oauth.GitHubOAuthError as e:
        logger.error(f"GitHub sign-in failed: {e}")
        return RedirectResponse(failed_url)
    except Exception as e:
        db.rollback()
        logger.error(f"GitHub sign-in failed: {e}", exc_info=True)
        return RedirectResponse(failed_url)

    return RedirectResponse(f"{FRONTEND_URL}/composio?token={token_for_user(user)}")


@router.get("/login/success")
async def login_success(current_user: Optional[User] = Depends(get_optional_user)):
    if current_user is None:
        return fail("Not authenticated")
    return success(UserResponse.model_validate(current_user))


@router.get("/login/failed")
async def login_failed():
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=fail("failure"))


@router.get("/logout")
async def logout():
    return success({"status": "logout", "user": {}})
