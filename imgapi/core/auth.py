"""HTTP Basic authentication against the configured user list."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from fastapi.security import HTTPBasicCredentials

from .config import UserEntry
from .errors import ErrorCode, ImgApiError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    attempted: bool
    authenticated: bool
    username: str = ""


ANONYMOUS = AuthResult(attempted=False, authenticated=False)


def authenticate(
    credentials: Optional[HTTPBasicCredentials],
    userdb: Sequence[UserEntry],
) -> AuthResult:
    """
    Classify the caller as anonymous or authenticated.

    The first entry whose name matches decides the outcome; later entries
    with the same name are never consulted.

    Raises:
        ImgApiError: AccountDoesNotExist for an unknown user,
            UnauthorizedError for a wrong password.
    """
    if credentials is None:
        return ANONYMOUS

    username = credentials.username
    entry = next((e for e in userdb if e.name == username), None)
    if entry is None:
        logger.warning("User %s does not exist", username)
        raise ImgApiError(ErrorCode.ACCOUNT_DOES_NOT_EXIST, f"User {username} does not exist")

    if credentials.password != entry.password:
        logger.warning("Invalid username password combo for %s", username)
        raise ImgApiError(ErrorCode.UNAUTHORIZED, "Invalid username/password combination")

    return AuthResult(attempted=True, authenticated=True, username=username)
