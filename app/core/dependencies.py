# app/core/dependencies.py
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import TokenAuthenticator
from app.database import Database, get_database, get_db
from app.domains.chat.provider import CompletionProvider
from app.domains.chat.relay import StreamRelay
from app.domains.user.service import UserService
from app.exceptions.ai import AIConfigurationError
from app.exceptions.user import InactiveUserError
from app.schemas.user import AuthContext
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
auth = TokenAuthenticator()


async def validate_token(token: HTTPAuthorizationCredentials | None = Depends(security)) -> dict:
    """Validate and decode the caller's bearer token.

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    try:
        if not token or not token.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication token is required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        payload = await auth.verify_token(token.credentials)

        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Token validation error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        HTTPException: If the payload has no subject or the lookup fails
        InactiveUserError: If the account is deactivated
    """
    try:
        subject = payload.get("sub")

        if not subject:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload - missing user ID",
            )

        # Get or create user in local database
        user_service = UserService(db)
        user = await user_service.get_or_create_user(subject, payload)

        if not user.is_active:
            raise InactiveUserError()

        request.state.user_id = user.id
        return user

    except HTTPException:
        raise
    except Exception as e:
        logger.error("User authentication error: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication service error",
        ) from e


async def get_auth_context(current_user: User = Depends(get_current_user)) -> AuthContext:
    """Reduce the authenticated user to the value threaded through handlers."""
    return AuthContext(user_id=current_user.id, subject=current_user.auth_subject)


def get_completion_provider(request: Request) -> CompletionProvider:
    """Provider built at startup; message streaming is unavailable without one."""
    provider = getattr(request.app.state, "completion_provider", None)
    if provider is None:
        raise AIConfigurationError("AI service is not configured")
    return provider


def get_stream_relay(
    database: Database = Depends(get_database),
    provider: CompletionProvider = Depends(get_completion_provider),
) -> StreamRelay:
    return StreamRelay(database, provider, settings)
