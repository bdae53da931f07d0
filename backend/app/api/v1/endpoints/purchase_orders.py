"""
Purchase Order Receiving API Endpoints
"""
from fastapi import APIRouter, Depends

from app.api.v1.deps import get_ops_client
from app.integrations.ops_api import OpsApiClient
from app.schemas.purchasing import ReceivePORequest
from app.schemas.views import ReceivingView
from app.services.detail_views import load_receiving_view, receive_purchase_order

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


@router.get("/{po_id}/receiving", response_model=ReceivingView)
async def get_receiving_view(
    po_id: str,
    client: OpsApiClient = Depends(get_ops_client),
):
    """Receivable lines with pending quantities for an open order"""
    return await load_receiving_view(client, po_id)


@router.post("/{po_id}/receive", response_model=ReceivingView)
async def receive_purchase_order_lines(
    po_id: str,
    request: ReceivePORequest,
    client: OpsApiClient = Depends(get_ops_client),
):
    """
    Receive items against a purchase order

    - Entered quantities are clamped to each line's pending qty
    - At least one line must receive a positive quantity
    - The response is rebuilt from the order the server returns
    """
    return await receive_purchase_order(
        client, po_id, request.lines, skip_inspection=request.skip_inspection
    )
