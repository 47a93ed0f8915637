"""
Authentication API Endpoints

Login, signup and logout. Tokens issued by the backend are stored in
http-only session cookies; the browser never sees them in a body.
"""

import logging
from typing import Any, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ....core.auth.session import SessionTokens, clear_auth_cookies, set_auth_cookies
from ....core.backend.client import BackendClient
from ....core.config import GatewaySettings
from ..dependencies import get_backend, get_settings
from ..error_codes import ErrorCode
from ..exceptions import (
    APIException,
    BackendError,
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    UnauthorizedError,
    ValidationError,
)
from ..responses import MessageResponse
from ..security import check_rate_limit, get_client_ip, sanitize_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

SIGNUP_MESSAGE = "Account created successfully! Welcome aboard!"
LOGIN_MESSAGE = "Welcome back!"


class AuthRequest(BaseModel):
    """Login or signup request body."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role_code: Optional[str] = None
    is_signup: bool = Field(default=False, alias="isSignup")


def _backend_message(response: httpx.Response, default: str) -> tuple:
    """Pull a human message out of a backend error body."""
    try:
        payload = response.json()
    except ValueError:
        return default, None

    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, str) and message:
            return message, payload
    return default, payload


async def _create_account(backend: BackendClient, body: AuthRequest) -> None:
    if not body.name or not body.role_code:
        raise ValidationError("Name and role are required for registration")

    response = await backend.create_user({
        "email": body.email,
        "password": body.password,
        "name": body.name,
        "role_code": body.role_code,
        "email_confirm": True,
    })

    if response.is_success:
        logger.info("Account created", extra={"role_code": body.role_code})
        return

    if response.status_code == 409:
        raise ConflictError("User already exists. Please login instead.", code=ErrorCode.USER_EXISTS)

    message, payload = _backend_message(response, "Failed to create account")
    raise BackendError(response.status_code, message, payload)


async def _login(backend: BackendClient, body: AuthRequest) -> Any:
    response = await backend.login(body.email, body.password)

    if not response.is_success:
        if response.status_code == 401:
            raise UnauthorizedError("Invalid email or password", code=ErrorCode.INVALID_CREDENTIALS)
        message, payload = _backend_message(response, "Login failed")
        raise BackendError(response.status_code, message, payload)

    try:
        return response.json()
    except ValueError:
        raise APIException(
            ErrorCode.EXTERNAL_SERVICE_ERROR,
            "Invalid response from authentication service",
            status_code=500,
        )


@router.post("/auth")
async def authenticate(
    request: Request,
    body: AuthRequest,
    settings: GatewaySettings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
):
    """
    Log in, or create an account and then log in.

    Sets the ``token`` cookie (and ``refresh_token`` when issued) and
    returns ``{success, user, message, isNewUser}``.
    """
    check_rate_limit(get_client_ip(request))

    if not settings.auth_url or not settings.create_user_url:
        logger.error(
            "Missing authentication endpoints",
            extra={"auth_url": bool(settings.auth_url), "create_user_url": bool(settings.create_user_url)},
        )
        raise ConfigurationError()

    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    try:
        if body.is_signup:
            await _create_account(backend, body)
        login_data = await _login(backend, body)
    except httpx.HTTPError as e:
        logger.error(f"Authentication service unreachable: {sanitize_error_message(e)}")
        raise ExternalServiceError("auth", "Authentication service unavailable. Please try again.")

    tokens = SessionTokens.from_payload(login_data)
    if tokens is None:
        raise APIException(
            ErrorCode.EXTERNAL_SERVICE_ERROR,
            "Invalid response from authentication service",
            status_code=500,
        )

    user = login_data.get("user")
    response = JSONResponse({
        "success": True,
        "user": user,
        "message": SIGNUP_MESSAGE if body.is_signup else LOGIN_MESSAGE,
        "isNewUser": body.is_signup,
    })
    set_auth_cookies(response, tokens, secure=settings.secure_cookies)

    logger.info("Login succeeded", extra={"new_user": body.is_signup})
    return response


@router.post("/logout", response_model=MessageResponse)
async def logout(settings: GatewaySettings = Depends(get_settings)):
    """Clear both session cookies."""
    response = JSONResponse({"message": "Logged out successfully"})
    clear_auth_cookies(response, secure=settings.secure_cookies)
    return response
