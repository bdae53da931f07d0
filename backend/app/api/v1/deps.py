"""
API Dependencies

Shared dependencies for the v1 endpoints.
"""
from fastapi import Request

from app.integrations.ops_api import OpsApiClient


def get_ops_client(request: Request) -> OpsApiClient:
    """The application's upstream client, opened in the lifespan handler"""
    return request.app.state.ops_client
