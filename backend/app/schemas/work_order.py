"""
Work Order Pydantic Schemas
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.bom import ResolvedBOMLine


class WorkOrder(BaseModel):
    id: str
    assembly_ipn: str
    qty: Decimal = Field(..., gt=0)
    status: str = "open"
    priority: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class WorkOrderBOM(BaseModel):
    """Resolved BOM for a work order's assembly x qty"""
    wo_id: Optional[str] = None
    assembly_ipn: str
    qty: Decimal = Field(Decimal("1"), gt=0)
    bom: List[ResolvedBOMLine] = Field(default_factory=list)

    @field_validator("bom", mode="before")
    @classmethod
    def none_bom_is_empty(cls, v):
        return [] if v is None else v


class ShortageSummary(BaseModel):
    """Aggregates computed purely from a line set"""
    total_lines: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)
    total_shortage_qty: Decimal = Decimal("0")
    has_shortage: bool = False
    partially_available: int = Field(
        0, description="Short lines that still have some stock (the server's legacy 'low')"
    )
    drifted_lines: List[str] = Field(
        default_factory=list, description="IPNs whose server label disagreed with the quantities"
    )
