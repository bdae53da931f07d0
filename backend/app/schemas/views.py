"""
Detail View Pydantic Schemas

Each screen is a primary entity plus independently loaded sections. A
section that fails carries its own state and message; it never fails the
surrounding view.
"""
from decimal import Decimal
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from app.schemas.bom import BOMTreeRow, ResolvedBOMLine, WhereUsedEntry
from app.schemas.costing import CostSummary
from app.schemas.part import Part
from app.schemas.purchasing import PurchaseOrder, PurchaseOrderLine, Vendor
from app.schemas.quote import Quote, QuoteLineCosting, QuoteTotals
from app.schemas.work_order import ShortageSummary, WorkOrder

T = TypeVar("T")


class SectionState(str, Enum):
    LOADED = "loaded"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"


class Section(BaseModel, Generic[T]):
    """One independently fetched aspect of a view"""
    state: SectionState
    data: Optional[T] = None
    message: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self.state == SectionState.LOADED


class ViewState(str, Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    FAILED = "failed"


# ============================================================================
# Part detail
# ============================================================================

class BOMSection(BaseModel):
    build_qty: Decimal
    rows: List[BOMTreeRow] = Field(default_factory=list, description="Visible tree rows")
    availability: List[ResolvedBOMLine] = Field(
        default_factory=list, description="Leaf requirements netted against catalog stock"
    )
    summary: Optional[ShortageSummary] = None


class PartDetailView(BaseModel):
    ipn: str
    state: ViewState
    message: Optional[str] = None
    part: Optional[Part] = None
    is_assembly: bool = False
    bom: Section[BOMSection]
    cost: Section[CostSummary]
    where_used: Section[List[WhereUsedEntry]]


# ============================================================================
# Work order shortages
# ============================================================================

class ShortageSection(BaseModel):
    assembly_ipn: str
    qty: Decimal
    lines: List[ResolvedBOMLine] = Field(default_factory=list)
    summary: ShortageSummary


class WorkOrderShortageView(BaseModel):
    wo_id: str
    state: ViewState
    message: Optional[str] = None
    work_order: Optional[WorkOrder] = None
    shortages: Section[ShortageSection]
    vendors: Section[List[Vendor]]
    can_generate_po: bool = Field(False, description="At least one line is short")


# ============================================================================
# Purchase order receiving
# ============================================================================

class ReceivingView(BaseModel):
    po_id: str
    state: ViewState
    message: Optional[str] = None
    order: Optional[PurchaseOrder] = None
    vendor: Section[Vendor]
    is_receivable: bool = False
    receivable_lines: List[PurchaseOrderLine] = Field(default_factory=list)
    pending: Dict[int, Decimal] = Field(default_factory=dict, description="line id -> pending qty")
    totals: Dict[str, Decimal] = Field(default_factory=dict)


# ============================================================================
# Quote costing
# ============================================================================

class QuoteCostingSection(BaseModel):
    lines: List[QuoteLineCosting] = Field(default_factory=list)
    totals: QuoteTotals


class QuoteCostingView(BaseModel):
    quote_id: str
    state: ViewState
    message: Optional[str] = None
    quote: Optional[Quote] = None
    costing: Section[QuoteCostingSection]
