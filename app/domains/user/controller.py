"""User authentication controller endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import auth, get_current_user
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import BaseAppException
from app.exceptions.user import InactiveUserError
from app.schemas.user import (
    AuthResponse,
    LogoutResponse,
    UserLoginRequest,
    UserResponse,
    UserUpdateRequest,
)
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a user with an identity provider token.

    This endpoint verifies the provided JWT and returns the local user,
    creating it the first time the subject is seen.
    """
    try:
        payload = await auth.verify_token(login_data.token)
        subject = payload.get("sub")

        if not subject:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

        user_service = UserService(db)
        user = await user_service.get_or_create_user(subject, payload)

        if not user.is_active:
            raise InactiveUserError()

        return AuthResponse(user=UserResponse.model_validate(user), message="Login successful")

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication failed: {str(e)}",
        ) from e


@router.post("/logout", response_model=LogoutResponse)
async def logout():
    """Logout endpoint.

    Tokens are stateless, so logging out is handled on the client side by
    discarding the token. This endpoint provides a standardized response.
    """
    return LogoutResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_current_user(
    update_data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update current authenticated user information.

    This endpoint allows users to update their profile information
    such as username and email.
    """
    user_service = UserService(db)

    try:
        updated_user = await user_service.update_user(
            user_id=current_user.id,
            username=update_data.username,
            email=str(update_data.email) if update_data.email else None,
        )
        return UserResponse.model_validate(updated_user)

    except BaseAppException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update user: {str(e)}",
        ) from e
