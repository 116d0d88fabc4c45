"""
Authentication service: password login on top of the user service.
"""
import logging

from storefront.config import get_settings
from storefront.core.security import create_access_token, verify_password
from storefront.schemas.auth import LoginRequest, LoginResponse
from storefront.services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, users: UserService):
        self.users = users
        self.settings = get_settings()

    async def authenticate(self, email: str, password: str):
        """
        Return the user document if the credentials match, else None.

        A malformed stored hash counts as a mismatch.
        """
        user_doc = await self.users.get_by_email(email)
        if user_doc is None:
            return None
        if not verify_password(password, user_doc.get("password")):
            logger.info("Failed login for user %s", user_doc["_id"])
            return None
        return user_doc

    async def login(self, request: LoginRequest) -> LoginResponse:
        """
        Authenticate user and return JWT token.

        Raises:
            ValueError: If credentials are invalid
        """
        user_doc = await self.authenticate(request.email, request.password)
        if user_doc is None:
            raise ValueError("Invalid email or password")

        user_id = str(user_doc["_id"])
        is_admin = bool(user_doc.get("isAdmin", False))
        access_token = create_access_token(user_id=user_id, is_admin=is_admin)

        return LoginResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=self.settings.jwt_access_token_expire_minutes * 60,
            user_id=user_id,
            is_admin=is_admin,
        )
