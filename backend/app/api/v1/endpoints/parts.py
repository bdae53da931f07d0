"""
Part Detail API Endpoints
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_ops_client
from app.integrations.ops_api import OpsApiClient
from app.schemas.views import PartDetailView
from app.services.detail_views import load_part_detail

router = APIRouter(prefix="/parts", tags=["parts"])


@router.get("/{ipn}/detail", response_model=PartDetailView)
async def get_part_detail(
    ipn: str,
    build_qty: Decimal = Query(Decimal("1"), gt=0, description="Assemblies to build"),
    client: OpsApiClient = Depends(get_ops_client),
):
    """
    Part fields, BOM tree, cost rollup and where-used for one IPN.

    Sections load independently; a failed section is reported in its own
    `state` and never fails the request.
    """
    return await load_part_detail(client, ipn, build_qty=build_qty)
