"""
Part Catalog Pydantic Schemas
"""
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class Part(BaseModel):
    """Catalog record for one IPN.

    `is_assembly` is the explicit capability flag. When the catalog omits it
    the engine falls back to the configurable IPN-prefix predicate.
    """
    ipn: str = Field(..., min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0, description="Standard unit cost")
    price: Optional[Decimal] = Field(None, ge=0)
    lead_time: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[Decimal] = None
    current_stock: Optional[Decimal] = None
    location: Optional[str] = None
    vendor: Optional[str] = None
    status: Optional[str] = None
    is_assembly: Optional[bool] = None
    fields: Dict[str, str] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def none_fields_is_empty(cls, v):
        return {} if v is None else v
