"""
Debug Endpoints

Development aid for checking the super admin allow-lists are wired up.
Disabled in production.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.config import GatewaySettings
from ..dependencies import get_settings
from ..exceptions import NotFoundError

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/env")
async def debug_env(settings: GatewaySettings = Depends(get_settings)) -> Dict[str, Any]:
    """Report whether the allow-lists are configured, without the addresses."""
    if settings.is_production:
        raise NotFoundError("Resource")

    return {
        "hasServerEnv": bool(settings.super_admin_emails),
        "hasClientEnv": bool(settings.public_super_admin_emails),
        "serverEmailCount": len(settings.super_admin_emails),
        "clientEmailCount": len(settings.public_super_admin_emails),
    }
