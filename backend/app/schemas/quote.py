"""
Quote Pydantic Schemas
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class QuoteLine(BaseModel):
    id: Optional[int] = None
    ipn: str = ""
    description: str = ""
    qty: Decimal = Field(Decimal("0"), ge=0)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    notes: str = ""

    @field_validator("description", "notes", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return "" if v is None else v


class Quote(BaseModel):
    id: str
    customer: str = ""
    status: str = "draft"
    notes: str = ""
    created_at: Optional[str] = None
    valid_until: Optional[str] = None
    accepted_at: Optional[str] = None
    lines: List[QuoteLine] = Field(default_factory=list)

    @field_validator("lines", mode="before")
    @classmethod
    def none_lines_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("customer", "notes", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return "" if v is None else v


class QuoteLineCosting(BaseModel):
    """Derived money values for one quote line"""
    ipn: str
    description: str = ""
    qty: Decimal
    unit_price: Decimal
    unit_cost: Decimal
    cost_known: bool = Field(..., description="False when the IPN is absent from the cost catalog")
    line_total: Decimal
    line_cost: Decimal
    line_margin: Decimal
    margin_percent: Decimal
    below_cost: bool = Field(False, description="Selling below cost; shown, never blocked")


class QuoteTotals(BaseModel):
    total_quoted: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    margin: Decimal = Decimal("0")
    margin_percent: Decimal = Decimal("0")
    below_cost: bool = False
