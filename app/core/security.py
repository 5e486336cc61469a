"""Security related functions."""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, status
from jwt import InvalidTokenError

from app.core.config import Settings, settings


class TokenAuthenticator:
    """
    Verifies the JSON Web Tokens presented by API callers.

    Tokens are issued by an external identity provider sharing the configured
    secret. Verification checks the signature, the expiry and the presence of
    a ``sub`` claim; credential handling itself stays with the provider.

    :ivar secret_key: The secret key used to verify JWT tokens.
    :type secret_key: str
    :ivar algorithm: The JWT signing algorithm.
    :type algorithm: str
    """

    def __init__(self, app_settings: Settings | None = None):
        app_settings = app_settings or settings
        self.secret_key = app_settings.secret_key
        self.algorithm = app_settings.algorithm

    async def verify_token(self, token: str) -> dict:
        """
        Verifies a given JSON Web Token and returns its decoded payload.

        :param token: The JWT token to be verified.
        :return: A dictionary containing the decoded payload of the token.
        :raises HTTPException: 401 when the token is invalid, expired or has no subject.
        """
        try:
            payload = jwt.decode(
                token,
                key=self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid authentication token: {str(e)}",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        return payload


def create_access_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
    app_settings: Settings | None = None,
) -> str:
    """Mint a token the API accepts. Used for development tooling and tests."""
    app_settings = app_settings or settings
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=app_settings.access_token_expire_minutes))
    payload = {**(claims or {}), "sub": subject, "exp": expire, "iat": datetime.now(UTC)}
    return jwt.encode(payload, app_settings.secret_key, algorithm=app_settings.algorithm)
