"""
Work Order Shortage API Endpoints
"""
from fastapi import APIRouter, Depends

from app.api.v1.deps import get_ops_client
from app.integrations.ops_api import OpsApiClient
from app.schemas.purchasing import GeneratePORequest, POSuggestionSet, PurchaseOrderCreated
from app.schemas.views import WorkOrderShortageView
from app.services.detail_views import (
    generate_po_for_work_order,
    load_po_suggestions,
    load_work_order_shortages,
)

router = APIRouter(prefix="/work-orders", tags=["work-orders"])


@router.get("/{wo_id}/shortages", response_model=WorkOrderShortageView)
async def get_work_order_shortages(
    wo_id: str,
    client: OpsApiClient = Depends(get_ops_client),
):
    """Netted BOM lines for the work order's build quantity, with status counts"""
    return await load_work_order_shortages(client, wo_id)


@router.post("/{wo_id}/purchase-orders", response_model=PurchaseOrderCreated, status_code=201)
async def generate_purchase_order(
    wo_id: str,
    request: GeneratePORequest,
    client: OpsApiClient = Depends(get_ops_client),
):
    """
    Order the work order's shortage lines from the selected vendor

    - Only lines with status "shortage" are ordered, each for its shortage qty
    - 400 when no vendor is selected or nothing is short
    """
    return await generate_po_for_work_order(client, wo_id, request.vendor_id)


@router.get("/{wo_id}/purchase-suggestions", response_model=POSuggestionSet)
async def get_purchase_suggestions(
    wo_id: str,
    client: OpsApiClient = Depends(get_ops_client),
):
    """Draft orders for the shortages, grouped by each part's cheapest vendor"""
    return await load_po_suggestions(client, wo_id)
