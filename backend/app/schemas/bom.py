"""
Bill of Materials Pydantic Schemas

- BOMNode: one level of an assembly as returned by the operations API
- ExplodedBOMNode / BOMTreeRow: walker output (flatten and display modes)
- ResolvedBOMLine: a flattened requirement netted against inventory
- WhereUsedEntry: an assembly that consumes a given part
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.status_config import ShortageStatus


# ============================================================================
# BOM Tree
# ============================================================================

class BOMNode(BaseModel):
    """One assembly/component occurrence within its parent.

    Snapshots are frozen: consumers never mutate a fetched tree. `qty` is
    the quantity consumed by ONE unit of the immediate parent.
    """
    model_config = ConfigDict(frozen=True)

    ipn: str = Field(..., min_length=1, description="Internal part number")
    description: str = ""
    qty: Decimal = Field(Decimal("1"), gt=0, description="Quantity per parent unit")
    ref: Optional[str] = Field(None, description="Reference designators, display only")
    children: Tuple["BOMNode", ...] = ()

    @field_validator("description", mode="before")
    @classmethod
    def none_description_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("qty", mode="before")
    @classmethod
    def missing_qty_is_one(cls, v):
        return Decimal("1") if v is None else v

    @field_validator("children", mode="before")
    @classmethod
    def none_children_is_leaf(cls, v):
        return () if v is None else v

    @property
    def is_leaf(self) -> bool:
        return not self.children


BOMNode.model_rebuild()


BOMPath = Tuple[str, ...]


class ExplodedBOMNode(BaseModel):
    """A BOM node with its tree position and multiplied requirement"""
    model_config = ConfigDict(frozen=True)

    path: BOMPath = Field(..., description="IPNs from the root to this node, inclusive")
    position: Tuple[int, ...] = Field(..., description="Child indexes from the root; unique per node")
    ipn: str
    description: str = ""
    ref: Optional[str] = None
    depth: int = Field(..., ge=0)
    qty_per: Decimal = Field(..., description="Quantity per immediate parent")
    qty_required: Decimal = Field(..., description="Build qty x product of qty along the path")
    is_leaf: bool


class BOMTreeRow(ExplodedBOMNode):
    """A visible row of the display-mode tree"""
    expanded: bool = False


# ============================================================================
# Resolved / Netted Lines
# ============================================================================

class ResolvedBOMLine(BaseModel):
    """A flattened requirement compared against on-hand inventory"""
    ipn: str
    description: str = ""
    qty_required: Decimal = Field(Decimal("0"), ge=0)
    qty_on_hand: Decimal = Decimal("0")
    shortage: Decimal = Field(Decimal("0"), ge=0)
    status: ShortageStatus = ShortageStatus.OK

    @field_validator("description", mode="before")
    @classmethod
    def none_description_is_empty(cls, v):
        return "" if v is None else v

    @property
    def partially_available(self) -> bool:
        """Short, but some stock exists (the server's legacy 'low' case)"""
        return self.shortage > 0 and self.qty_on_hand > 0


class WhereUsedEntry(BaseModel):
    """An assembly that lists the part on its BOM"""
    assembly_ipn: str
    description: str = ""
    qty: Decimal = Decimal("1")
    ref: str = ""

    @field_validator("description", "ref", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return "" if v is None else v


class BOMResolution(BaseModel):
    """Outcome of fetching and flattening a BOM; never raises to the caller"""
    root_ipn: str
    build_qty: Decimal = Decimal("1")
    root: Optional[BOMNode] = None
    nodes: List[ExplodedBOMNode] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.root is not None

    @property
    def components(self) -> List[ExplodedBOMNode]:
        """Every node below the root"""
        return [n for n in self.nodes if n.depth > 0]

    @property
    def leaves(self) -> List[ExplodedBOMNode]:
        """Purchased parts: components with no children of their own"""
        return [n for n in self.components if n.is_leaf]
