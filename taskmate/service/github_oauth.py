"""
GitHub OAuth code flow: authorize URL, code-for-token exchange and profile lookup.
"""
from datetime import datetime, timedelta
from urllib.parse import urlencode
import requests
from jose import jwt, JWTError
from taskmate.config import (
    GITHUB_CLIENT_ID,
    GITHUB_CLIENT_SECRET,
    GITHUB_CALLBACK_URL,
    SECRET_KEY,
    ALGORITHM,
)
from taskmate.utils.logger import get_logger

logger = get_logger("github_oauth")

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"
SCOPE = "read:user"
STATE_MAX_AGE_MINUTES = 10
REQUEST_TIMEOUT = 10


class GitHubOAuthError(Exception):
    """Raised when any step of the GitHub sign-in fails."""


def create_state() -> str:
    """Short-lived signed state carried through the GitHub round trip."""
    expire = datetime.utcnow() + timedelta(minutes=STATE_MAX_AGE_MINUTES)
    return jwt.encode({"purpose": "github_oauth", "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def verify_state(state: str) -> bool:
    if not state:
        return False
    try:
        payload = jwt.decode(state, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return False
    return payload.get("purpose") == "github_oauth"


def authorize_url(state: str) -> str:
    params = {
        "client_id": GITHUB_CLIENT_ID,
        "redirect_uri": GITHUB_CALLBACK_URL,
        "scope": SCOPE,
        "state": state,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(code: str) -> str:
    """
    Trade an authorization code for an access token.

    Raises:
        GitHubOAuthError: GitHub rejected the code or could not be reached
    """
    if not GITHUB_CLIENT_ID or not GITHUB_CLIENT_SECRET:
        raise GitHubOAuthError("GitHub OAuth is not configured")
    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "client_id": GITHUB_CLIENT_ID,
                "client_secret": GITHUB_CLIENT_SECRET,
                "code": code,
                "redirect_uri": GITHUB_CALLBACK_URL,
            },
            headers={"Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise GitHubOAuthError(f"Token exchange failed: {e}") from e

    if response.status_code != 200:
        raise GitHubOAuthError(f"Token exchange failed: {response.text}")

    payload = response.json()
    access_token = payload.get("access_token")
    if not access_token:
        raise GitHubOAuthError(f"Token exchange failed: {payload.get('error_description') or payload.get('error')}")
    return access_token


def fetch_profile(access_token: str) -> dict:
    try:
        response = requests.get(
            USER_URL,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise GitHubOAuthError(f"Profile request failed: {e}") from e

    if response.status_code != 200:
        raise GitHubOAuthError(f"Profile request failed with status {response.status_code}")

    profile = response.json()
    if not profile.get("id"):
        raise GitHubOAuthError("GitHub profile has no id")
    return profile


def sign_in(code: str) -> tuple[dict, str]:
    """
    Complete the code flow; returns (profile, access_token).
    """
    access_token = exchange_code(code)
    profile = fetch_profile(access_token)
    logger.info(f"GitHub sign-in for {profile.get('login')} ({profile.get('id')})")
    return profile, access_token
