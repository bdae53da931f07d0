"""
Costing Service

Unit-cost lookups and the BOM cost rollup used by the part detail view and
by quote costing. An IPN missing from the catalog costs 0.
"""
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from app.logging_config import get_logger
from app.schemas.bom import BOMResolution, ExplodedBOMNode
from app.schemas.costing import CostEntry, CostSummary
from app.schemas.part import Part

logger = get_logger(__name__)

ZERO = Decimal("0")


class CostCatalog:
    """IPN -> unit cost lookup built from the parts catalog"""

    def __init__(self, costs: Optional[Mapping[str, Decimal]] = None):
        self._costs: Dict[str, Decimal] = {
            ipn: Decimal(str(cost)) for ipn, cost in (costs or {}).items()
        }

    @classmethod
    def from_parts(cls, parts: Iterable[Part]) -> "CostCatalog":
        return cls({p.ipn: p.cost for p in parts if p.cost is not None})

    def knows(self, ipn: str) -> bool:
        return ipn in self._costs

    def unit_cost(self, ipn: str) -> Decimal:
        return self._costs.get(ipn, ZERO)

    def __contains__(self, ipn: str) -> bool:
        return self.knows(ipn)

    def __len__(self) -> int:
        return len(self._costs)


def rollup_bom_cost(nodes: Iterable[ExplodedBOMNode], catalog: CostCatalog) -> Decimal:
    """Sum of qty_required x unit cost over the purchased (leaf) components"""
    total = ZERO
    for node in nodes:
        if node.depth == 0 or not node.is_leaf:
            continue
        total += node.qty_required * catalog.unit_cost(node.ipn)
    return total


def should_display_bom_cost(bom_cost: Optional[Decimal]) -> bool:
    """A BOM cost of 0 (or none at all) is hidden"""
    return bom_cost is not None and bom_cost > 0


def summarize_cost(
    ipn: str,
    entry: Optional[CostEntry] = None,
    resolution: Optional[BOMResolution] = None,
    catalog: Optional[CostCatalog] = None,
) -> Optional[CostSummary]:
    """
    Build the cost section for a part.

    The local rollup (per unit of the assembly) is preferred when both the
    BOM and the catalog are available; otherwise the server's bom_cost is
    used. Returns None when nothing at all is known.
    """
    bom_cost: Optional[Decimal] = None
    source: Optional[str] = None

    if resolution is not None and resolution.ok and catalog is not None and len(catalog):
        rolled = rollup_bom_cost(resolution.nodes, catalog)
        if resolution.build_qty > 0:
            rolled = rolled / resolution.build_qty
        bom_cost, source = rolled, "rollup"
        if entry is not None and entry.bom_cost is not None and entry.bom_cost != rolled:
            logger.debug(
                f"BOM cost for {ipn}: rollup {rolled} differs from server {entry.bom_cost}",
                extra={"ipn": ipn},
            )
    elif entry is not None and entry.bom_cost is not None:
        bom_cost, source = entry.bom_cost, "server"

    if entry is None and bom_cost is None:
        return None

    return CostSummary(
        ipn=ipn,
        last_unit_price=entry.last_unit_price if entry else None,
        last_po_id=entry.last_po_id if entry else None,
        last_ordered_date=entry.last_ordered_date if entry else None,
        bom_cost=bom_cost,
        bom_cost_source=source,
        show_bom_cost=should_display_bom_cost(bom_cost),
    )
