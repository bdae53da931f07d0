"""
Quote Costing API Endpoints
"""
from fastapi import APIRouter, Depends

from app.api.v1.deps import get_ops_client
from app.integrations.ops_api import OpsApiClient
from app.schemas.views import QuoteCostingView
from app.services.detail_views import load_quote_costing

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.get("/{quote_id}/costing", response_model=QuoteCostingView)
async def get_quote_costing(
    quote_id: str,
    client: OpsApiClient = Depends(get_ops_client),
):
    """Per-line and total margins; parts missing from the catalog cost 0"""
    return await load_quote_costing(client, quote_id)
