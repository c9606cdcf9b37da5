"""
User authentication manager.

Combines storage and the token service for the login, refresh and
who-am-i exchanges. Passwords arrive pre-hashed and are compared as
opaque strings.
"""

import secrets
from typing import Any, Dict

from loguru import logger

from ..errors import AuthenticationError, ConflictError, NotFoundError
from ..storage.database import USER, Database
from ..storage.models import Record, UserRegister, to_document
from .jwt_handler import REFRESH, JWTHandler, TokenPair


MSG_WRONG_CREDENTIALS = "wrong username or password"
MSG_REFRESH_INVALID = "refresh token invalid or expired"

# Never leaves the service
PRIVATE_FIELDS = ("password",)


def public_profile(user: Record) -> Dict[str, Any]:
    """User fields safe to return to clients."""
    return {
        "id": user.id,
        "username": user.data.get("username"),
        "email": user.data.get("email"),
        "nickname": user.data.get("nickname"),
        "role_codes": user.data.get("role_codes") or [],
    }


class UserManager:
    """
    Authentication flows over the user table.

    Provides:
    - Login (token pair for valid credentials)
    - Refresh (new token pair for a valid refresh token)
    - Who-am-i (public profile of the current principal)
    - Self-registration (account without roles)
    """

    def __init__(self, db: Database, jwt_handler: JWTHandler):
        """
        Initialize manager.

        Args:
            db: User storage
            jwt_handler: Token service
        """
        self.db = db
        self.jwt = jwt_handler

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Authenticate user and return tokens.

        Args:
            username: Username
            password: Pre-hashed password

        Returns:
            ``{"token", "refresh_token", "user"}``

        Raises:
            NotFoundError: Unknown username
            AuthenticationError: Password mismatch
        """
        user = self.db.find_one(USER, "username", username)
        if user is None:
            logger.warning(f"Login failed: user '{username}' not found")
            raise NotFoundError("user")

        stored = str(user.data.get("password", ""))
        if not secrets.compare_digest(stored.encode("utf-8"), password.encode("utf-8")):
            logger.warning(f"Login failed: invalid password for '{username}'")
            raise AuthenticationError(MSG_WRONG_CREDENTIALS)

        pair = self.jwt.issue({"user_id": user.id})
        logger.info(f"User logged in: {username}")

        return {
            "token": pair.access_token,
            "refresh_token": pair.refresh_token,
            "user": public_profile(user),
        }

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        The presented token stays valid until it expires; there is no
        single-use invalidation.

        Raises:
            AuthenticationError: Refresh token invalid, expired or not a refresh token
        """
        result = self.jwt.verify(refresh_token, token_type=REFRESH)
        if not result.valid:
            logger.warning(f"Refresh rejected: {result.reason.value}")
            raise AuthenticationError(MSG_REFRESH_INVALID)

        logger.debug(f"Token pair refreshed for user {result.user_id}")
        return self.jwt.issue({"user_id": result.user_id})

    def me(self, user_id: str) -> Dict[str, Any]:
        """
        Public profile of the given user.

        Raises:
            NotFoundError: User no longer exists
        """
        user = self.db.get(USER, user_id)
        if user is None:
            raise NotFoundError("user")
        return public_profile(user)

    def register(self, body: UserRegister) -> Record:
        """
        Create an account with no roles.

        Raises:
            ConflictError: Username or email already taken
        """
        ensure_unique_user(self.db, body.username, body.email)

        document = to_document(body)
        document["role_codes"] = []
        user = self.db.insert(USER, document)

        logger.info(f"User registered: {body.username} ({user.id})")
        return user


def ensure_unique_user(db: Database, username=None, email=None, exclude_id=None) -> None:
    """
    Fast-path duplicate check for username/email.

    The unique indexes remain authoritative; this only gives an early,
    precise error before attempting the write.

    Raises:
        ConflictError: On the first colliding field
    """
    if username and db.find_one(USER, "username", username, exclude_id=exclude_id):
        raise ConflictError("user", "username")
    if email and db.find_one(USER, "email", str(email), exclude_id=exclude_id):
        raise ConflictError("user", "email")
