"""
Inventory Netting Service

Compares flattened BOM requirements with on-hand inventory:
- shortage = max(0, qty_required - qty_on_hand)
- status is recomputed from the quantities; server-supplied labels are
  checked against them and drift is logged
- aggregate counts are computed purely from the line set
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.core.settings import get_settings
from app.core.status_config import ShortageStatus
from app.exceptions import StatusDriftError
from app.logging_config import get_logger
from app.schemas.bom import ExplodedBOMNode, ResolvedBOMLine
from app.schemas.work_order import ShortageSummary, WorkOrderBOM

logger = get_logger(__name__)

ZERO = Decimal("0")


def compute_shortage(qty_required: Decimal, qty_on_hand: Decimal) -> Decimal:
    return max(ZERO, Decimal(qty_required) - Decimal(qty_on_hand))


def classify_status(qty_required: Decimal, qty_on_hand: Decimal) -> ShortageStatus:
    """ok when stock covers the requirement, shortage otherwise"""
    if compute_shortage(qty_required, qty_on_hand) > 0:
        return ShortageStatus.SHORTAGE
    return ShortageStatus.OK


def _label_consistent(reported: ShortageStatus, expected: ShortageStatus) -> bool:
    if reported == expected:
        return True
    # Legacy "low" means short but partially stocked
    return reported == ShortageStatus.LOW and expected == ShortageStatus.SHORTAGE


def reconcile_line(
    line: ResolvedBOMLine,
    trust_server: Optional[bool] = None,
    strict: bool = False,
) -> Tuple[ResolvedBOMLine, bool]:
    """
    Recompute shortage and status for one server-supplied line.

    Returns (line, drifted). `drifted` is True when the server's label
    contradicts its own quantities. With `strict`, drift raises
    StatusDriftError instead. With `trust_server`, the line is returned
    exactly as supplied.
    """
    if trust_server is None:
        trust_server = get_settings().TRUST_SERVER_SHORTAGE_STATUS

    shortage = compute_shortage(line.qty_required, line.qty_on_hand)
    expected = classify_status(line.qty_required, line.qty_on_hand)
    drifted = not _label_consistent(line.status, expected) or line.shortage != shortage

    if drifted:
        if strict:
            raise StatusDriftError(
                line.ipn, reported=line.status.value, expected=expected.value
            )
        logger.warning(
            f"Shortage status drift for {line.ipn}",
            extra={
                "ipn": line.ipn,
                "reported_status": line.status.value,
                "expected_status": expected.value,
                "reported_shortage": str(line.shortage),
                "expected_shortage": str(shortage),
            },
        )

    if trust_server:
        return line, drifted
    return line.model_copy(update={"shortage": shortage, "status": expected}), drifted


def net_requirements(
    nodes: Iterable[ExplodedBOMNode],
    on_hand: Mapping[str, Decimal],
) -> List[ResolvedBOMLine]:
    """
    Net flattened leaf requirements against on-hand stock.

    Requirements for the same IPN at different tree positions are summed
    into one line (first-seen order). IPNs missing from `on_hand` have 0.
    """
    required: Dict[str, Decimal] = {}
    descriptions: Dict[str, str] = {}
    for node in nodes:
        if node.depth == 0 or not node.is_leaf:
            continue
        required[node.ipn] = required.get(node.ipn, ZERO) + node.qty_required
        descriptions.setdefault(node.ipn, node.description)

    lines: List[ResolvedBOMLine] = []
    for ipn, qty_required in required.items():
        qty_on_hand = Decimal(str(on_hand.get(ipn, ZERO)))
        lines.append(
            ResolvedBOMLine(
                ipn=ipn,
                description=descriptions[ipn],
                qty_required=qty_required,
                qty_on_hand=qty_on_hand,
                shortage=compute_shortage(qty_required, qty_on_hand),
                status=classify_status(qty_required, qty_on_hand),
            )
        )
    return lines


def summarize_lines(
    lines: Iterable[ResolvedBOMLine],
    drifted: Iterable[str] = (),
) -> ShortageSummary:
    """Counts per status (every status present, zero when absent) and totals"""
    lines = list(lines)
    counts = {status.value: 0 for status in ShortageStatus}
    total_shortage = ZERO
    partial = 0
    for line in lines:
        counts[line.status.value] += 1
        total_shortage += line.shortage
        if line.partially_available:
            partial += 1

    return ShortageSummary(
        total_lines=len(lines),
        status_counts=counts,
        total_shortage_qty=total_shortage,
        has_shortage=counts[ShortageStatus.SHORTAGE.value] > 0,
        partially_available=partial,
        drifted_lines=list(drifted),
    )


def shortage_lines(lines: Iterable[ResolvedBOMLine]) -> List[ResolvedBOMLine]:
    return [line for line in lines if line.status == ShortageStatus.SHORTAGE]


class ShortageView:
    """Reconciled lines of a work order's BOM plus their summary"""

    def __init__(self, lines: List[ResolvedBOMLine], drifted: Optional[List[str]] = None):
        self.lines = list(lines)
        self.summary = summarize_lines(self.lines, drifted or [])

    @classmethod
    def from_work_order_bom(
        cls,
        wo_bom: WorkOrderBOM,
        trust_server: Optional[bool] = None,
        strict: bool = False,
    ) -> "ShortageView":
        lines: List[ResolvedBOMLine] = []
        drifted: List[str] = []
        for raw in wo_bom.bom:
            line, is_drifted = reconcile_line(raw, trust_server=trust_server, strict=strict)
            lines.append(line)
            if is_drifted:
                drifted.append(line.ipn)

        if drifted:
            logger.warning(
                f"{len(drifted)} BOM line(s) with inconsistent shortage status",
                extra={"wo_id": wo_bom.wo_id, "assembly_ipn": wo_bom.assembly_ipn},
            )
        return cls(lines, drifted)

    @property
    def has_shortage(self) -> bool:
        return self.summary.has_shortage

    @property
    def shortages(self) -> List[ResolvedBOMLine]:
        return shortage_lines(self.lines)
