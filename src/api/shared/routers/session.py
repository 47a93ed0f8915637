"""
Session Context Endpoints

Expose the consolidated authorization context of the current session
and answer single "can I" questions against it.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request

from ....core.auth.context import UserContext, load_user_context
from ....core.auth.permissions import can_perform_action, has_privilege
from ....core.auth.session import TOKEN_COOKIE_NAME
from ....core.backend.client import BackendClient
from ....core.backend.retry import BackendTimeoutError as RetryCeilingExceeded
from ....core.config import GatewaySettings
from ..dependencies import get_backend, get_settings
from ..exceptions import (
    BackendError,
    BackendTimeoutError,
    ExternalServiceError,
    UnauthorizedError,
)
from ..security import sanitize_error_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])


async def get_user_context(
    request: Request,
    settings: GatewaySettings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
) -> UserContext:
    """
    Load the context for the request's session cookie.

    Raises:
        UnauthorizedError: no token, or the backend rejected it
        ExternalServiceError: backend unreachable or answered nonsense
        BackendTimeoutError: backend did not wake up in time
    """
    token = request.cookies.get(TOKEN_COOKIE_NAME)
    if not token:
        raise UnauthorizedError("Unauthorized")

    try:
        return await load_user_context(backend, token, settings)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status == 401:
            raise UnauthorizedError("Session expired. Please login again.")
        raise BackendError(status, "Failed to load user session")
    except RetryCeilingExceeded as e:
        logger.error(str(e))
        raise BackendTimeoutError("Request timeout: backend took too long to respond")
    except httpx.HTTPError as e:
        logger.error(f"Session load failed: {sanitize_error_message(e)}")
        raise ExternalServiceError("backend", "Failed to connect to external service")
    except ValueError as e:
        logger.error(f"Malformed user payload: {e}")
        raise ExternalServiceError("backend", "Invalid response from authentication service")


@router.get("")
async def get_session(context: UserContext = Depends(get_user_context)) -> Dict[str, Any]:
    """Return ``{user, roles, isSuperAdmin, uiSuperAdmin, privileges, menus}``."""
    return context.to_dict()


@router.get("/can")
async def can(
    module: str = Query(..., min_length=1),
    action: str = Query(..., min_length=1),
    context: UserContext = Depends(get_user_context),
) -> Dict[str, Any]:
    return {
        "module": module,
        "action": action,
        "allowed": can_perform_action(context.privileges, module, action),
    }


@router.get("/has")
async def has(
    privilege: str = Query(..., min_length=1),
    module: Optional[str] = Query(None),
    context: UserContext = Depends(get_user_context),
) -> Dict[str, Any]:
    return {
        "privilege": privilege,
        "module": module,
        "allowed": has_privilege(context.privileges, privilege, module),
    }
