"""
API v1 Router - ZRP BOM Engine
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    parts,
    purchase_orders,
    quotes,
    work_orders,
)

router = APIRouter()

# Part detail (BOM tree, cost, where-used)
router.include_router(parts.router)

# Work order shortages and PO generation
router.include_router(work_orders.router)

# Purchase order receiving
router.include_router(purchase_orders.router)

# Quote costing
router.include_router(quotes.router)
