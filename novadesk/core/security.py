import secrets
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from novadesk.core.exceptions import AuthError
from novadesk.core.logger import logger

REALM = "NovaDesk Admin"

# auto_error=False so a missing header becomes our AuthError (and its challenge)
basic_auth = HTTPBasic(realm=REALM, auto_error=False)


class AdminGuard:
    """
    Checks HTTP Basic credentials against the single configured administrator.
    Comparison is exact and case-sensitive. With no credentials configured,
    every request is refused.
    """

    def __init__(self, username: str, password: str):
        self._username = username or ""
        self._password = password or ""

    @property
    def configured(self) -> bool:
        return bool(self._username and self._password)

    def authenticate(self, credentials: Optional[HTTPBasicCredentials]) -> bool:
        if not self.configured or credentials is None:
            return False
        user_ok = secrets.compare_digest(
            credentials.username.encode("utf-8"), self._username.encode("utf-8")
        )
        pass_ok = secrets.compare_digest(
            credentials.password.encode("utf-8"), self._password.encode("utf-8")
        )
        return user_ok and pass_ok


async def require_admin(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
) -> str:
    """
    FastAPI dependency guarding every admin route.
    Rate limiting already ran in middleware before this point.
    """
    guard: AdminGuard = request.app.state.admin_guard
    if not guard.authenticate(credentials):
        # Never log the submitted credentials
        logger.warning(f"🔒 Unauthorized admin request: {request.method} {request.url.path}")
        raise AuthError("Unauthorized")
    return credentials.username


def challenge_headers() -> dict:
    return {"WWW-Authenticate": f'Basic realm="{REALM}"'}
