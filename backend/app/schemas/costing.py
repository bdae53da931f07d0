"""
Costing Pydantic Schemas

CostEntry is what the operations API reports for one IPN; CostSummary is
the engine's view of it after the BOM rollup has been applied.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CostEntry(BaseModel):
    """Per-part costing facts as reported upstream"""
    ipn: str
    unit_cost: Decimal = Field(Decimal("0"), ge=0, description="Standard/purchase cost")
    last_unit_price: Optional[Decimal] = Field(None, ge=0, description="Most recent PO price")
    last_po_id: Optional[str] = None
    last_ordered_date: Optional[str] = None
    bom_cost: Optional[Decimal] = Field(None, ge=0, description="Rolled-up cost at qty 1")

    @model_validator(mode="before")
    @classmethod
    def accept_api_field_names(cls, data):
        # The parts API reports `po_id` / `last_ordered`
        if isinstance(data, dict):
            data = dict(data)
            if "last_po_id" not in data and "po_id" in data:
                data["last_po_id"] = data.pop("po_id")
            if "last_ordered_date" not in data and "last_ordered" in data:
                data["last_ordered_date"] = data.pop("last_ordered")
            if data.get("unit_cost") is None:
                data.pop("unit_cost", None)
        return data


class CostSummary(BaseModel):
    """Cost section of a part detail view"""
    ipn: str
    last_unit_price: Optional[Decimal] = None
    last_po_id: Optional[str] = None
    last_ordered_date: Optional[str] = None
    bom_cost: Optional[Decimal] = None
    bom_cost_source: Optional[str] = Field(
        None, description="'rollup' when computed from the BOM, 'server' when reported upstream"
    )
    show_bom_cost: bool = False

    @property
    def has_any(self) -> bool:
        return self.last_unit_price is not None or self.show_bom_cost
