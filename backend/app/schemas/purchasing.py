"""
Purchasing Pydantic Schemas

Covers:
- Vendors
- Purchase Orders and PO Lines
- Shortage-driven PO creation and suggestions
- Receiving
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.status_config import POStatus


# ============================================================================
# Vendor Schemas
# ============================================================================

class Vendor(BaseModel):
    """Vendor as listed by the operations API"""
    id: str
    name: str
    website: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    status: str = "active"
    lead_time_days: int = Field(0, ge=0)

    @property
    def is_active(self) -> bool:
        return self.status.lower() == "active"


# ============================================================================
# Purchase Order Schemas
# ============================================================================

class PurchaseOrderLine(BaseModel):
    """PO line; pending = qty_ordered - qty_received"""
    id: int
    ipn: str
    mpn: Optional[str] = None
    manufacturer: Optional[str] = None
    qty_ordered: Decimal = Field(..., ge=0)
    qty_received: Decimal = Field(Decimal("0"), ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

    @property
    def pending(self) -> Decimal:
        return max(Decimal("0"), self.qty_ordered - self.qty_received)

    @property
    def line_total(self) -> Decimal:
        return self.qty_ordered * (self.unit_price or Decimal("0"))


class PurchaseOrder(BaseModel):
    """Purchase order with its lines"""
    id: str
    vendor_id: Optional[str] = None
    status: str = POStatus.DRAFT.value
    notes: Optional[str] = None
    created_at: Optional[str] = None
    expected_date: Optional[str] = None
    received_at: Optional[str] = None
    lines: List[PurchaseOrderLine] = Field(default_factory=list)

    @field_validator("lines", mode="before")
    @classmethod
    def none_lines_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return (v or POStatus.DRAFT.value).lower()


class POLineCreate(BaseModel):
    """One line of a new purchase order"""
    ipn: str
    qty_ordered: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    mpn: Optional[str] = None
    manufacturer: Optional[str] = None
    notes: Optional[str] = None


class PurchaseOrderCreate(BaseModel):
    """Order-creation request sent upstream"""
    vendor_id: str = Field(..., min_length=1)
    notes: Optional[str] = None
    lines: List[POLineCreate] = Field(..., min_length=1)


class PurchaseOrderCreated(BaseModel):
    """Order-creation response"""
    po_id: str
    lines: int = 0


class GeneratePORequest(BaseModel):
    """Generate a PO for a work order's shortages"""
    vendor_id: Optional[str] = Field(None, description="Selected vendor; required")


# ============================================================================
# Suggestions
# ============================================================================

class PriceRecord(BaseModel):
    """One entry of a part's price history"""
    id: Optional[int] = None
    ipn: str
    vendor_id: Optional[str] = None
    vendor_name: Optional[str] = None
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = "USD"
    min_qty: int = 0
    lead_time_days: Optional[int] = None
    po_id: Optional[str] = None
    recorded_at: Optional[str] = None


class PreferredSource(BaseModel):
    """Preferred vendor for one part"""
    ipn: str
    vendor_id: str
    mpn: Optional[str] = None
    manufacturer: Optional[str] = None
    unit_price: Decimal = Field(Decimal("0"), ge=0)


class POSuggestionLine(BaseModel):
    ipn: str
    mpn: Optional[str] = None
    manufacturer: Optional[str] = None
    qty_needed: Decimal
    estimated_unit_price: Decimal = Decimal("0")

    @property
    def estimated_total(self) -> Decimal:
        return self.qty_needed * self.estimated_unit_price


class POSuggestion(BaseModel):
    """Draft PO grouping the shortages one vendor can cover"""
    vendor_id: str
    notes: Optional[str] = None
    lines: List[POSuggestionLine] = Field(default_factory=list)

    @property
    def estimated_total(self) -> Decimal:
        return sum((line.estimated_total for line in self.lines), Decimal("0"))


class POSuggestionSet(BaseModel):
    suggestions: List[POSuggestion] = Field(default_factory=list)
    unassigned: List[str] = Field(
        default_factory=list, description="Short IPNs with no preferred vendor"
    )


# ============================================================================
# Receiving
# ============================================================================

class ReceiptLine(BaseModel):
    """One line of a receipt submission"""
    line_id: int
    qty: Decimal = Field(..., gt=0)


class ReceivePORequest(BaseModel):
    """Receipt request accepted by the HTTP surface.

    `lines` maps PO line id to the quantity typed by the user; values are
    clamped to [0, pending] before anything is sent upstream.
    """
    lines: Dict[int, str] = Field(default_factory=dict)
    skip_inspection: bool = False

    @field_validator("lines", mode="before")
    @classmethod
    def stringify_quantities(cls, v):
        if isinstance(v, dict):
            return {k: "" if q is None else str(q) for k, q in v.items()}
        return v
