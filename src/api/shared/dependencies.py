"""FastAPI dependencies for objects created by the application factory."""

from fastapi import Request

from ...core.backend.client import BackendClient
from ...core.config import GatewaySettings


def get_settings(request: Request) -> GatewaySettings:
    return request.app.state.settings


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend
