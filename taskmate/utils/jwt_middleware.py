from datetime import datetime, timedelta
from fastapi import Request
from jose import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from taskmate.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from taskmate.utils.logger import get_logger

logger = get_logger("jwt_middleware")


class JWTRefreshMiddleware(BaseHTTPMiddleware):
    """
    Sends a fresh token in ``X-New-Token`` once less than half of the current
    token's lifetime is left.
    """

    REFRESH_THRESHOLD = 0.5

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if response.status_code != 200:
            return response

        auth_header = request.headers.get('Authorization')
        if not auth_header or not auth_header.startswith('Bearer '):
            return response

        token = auth_header.split(' ', 1)[1]
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            return response
        except jwt.JWTError as e:
            logger.debug(f"Could not decode bearer token: {e}")
            return response

        exp = payload.get('exp')
        if not exp:
            return response

        now = datetime.utcnow()
        remaining_time = (datetime.utcfromtimestamp(exp) - now).total_seconds()
        threshold_time = ACCESS_TOKEN_EXPIRE_MINUTES * 60 * self.REFRESH_THRESHOLD

        if 0 < remaining_time < threshold_time:
            new_payload = {
                "sub": payload.get("sub"),
                "exp": now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
            }
            response.headers['X-New-Token'] = jwt.encode(new_payload, SECRET_KEY, algorithm=ALGORITHM)
            logger.info(f"Token refreshed: user={payload.get('sub')}, remaining={remaining_time / 3600:.2f}h")

        return response
