"""
Procurement Service

Bridges a shortage set to purchase-order creation and back to receiving:
1. Shortage -> PO request (shortage lines only, vendor required)
2. Shortage -> per-vendor PO suggestions
3. PO -> receivable lines, clamped receipt quantities, receipt submission
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional

from app.core.status_config import (
    POStatus,
    get_allowed_receipt_statuses,
    is_po_receivable,
)
from app.exceptions import InvalidStateError, NotFoundError, ValidationError, ZRPException
from app.logging_config import get_logger
from app.schemas.bom import ResolvedBOMLine
from app.schemas.purchasing import (
    POLineCreate,
    POSuggestion,
    POSuggestionLine,
    POSuggestionSet,
    PreferredSource,
    PriceRecord,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderCreated,
    PurchaseOrderLine,
    ReceiptLine,
)
from app.services.inventory_netting import ShortageView, shortage_lines

logger = get_logger(__name__)

ZERO = Decimal("0")


# ============================================================================
# Shortage -> Purchase Order
# ============================================================================

def can_generate(lines: Iterable[ResolvedBOMLine], vendor_id: Optional[str]) -> bool:
    """Generation is offered only with a shortage and a selected vendor"""
    return bool(vendor_id) and bool(shortage_lines(lines))


def build_po_request(
    lines: Iterable[ResolvedBOMLine],
    vendor_id: Optional[str],
    notes: Optional[str] = None,
) -> PurchaseOrderCreate:
    """
    Order-creation request for exactly the shortage lines.

    Each line orders its shortage quantity; ok/low lines are never included.
    """
    if not vendor_id:
        raise ValidationError("A vendor must be selected", field="vendor_id")

    short = shortage_lines(lines)
    if not short:
        raise ValidationError("No shortage lines to order")

    return PurchaseOrderCreate(
        vendor_id=vendor_id,
        notes=notes,
        lines=[POLineCreate(ipn=line.ipn, qty_ordered=line.shortage) for line in short],
    )


class GeneratePODialog:
    """
    State of the "generate PO from shortages" action.

    A rejected creation call keeps the dialog open with the selected vendor
    and records the error for display.
    """

    def __init__(self, client, view: ShortageView, wo_id: Optional[str] = None):
        self.client = client
        self.view = view
        self.wo_id = wo_id
        self.vendor_id: Optional[str] = None
        self.is_open = True
        self.error: Optional[str] = None
        self.result: Optional[PurchaseOrderCreated] = None

    @property
    def is_offered(self) -> bool:
        return self.view.has_shortage

    @property
    def can_generate(self) -> bool:
        return can_generate(self.view.lines, self.vendor_id)

    async def submit(self) -> PurchaseOrderCreated:
        notes = f"Generated from work order {self.wo_id}" if self.wo_id else None
        request = build_po_request(self.view.lines, self.vendor_id, notes=notes)
        try:
            created = await self.client.create_purchase_order(request)
        except ZRPException as e:
            self.error = e.message
            logger.warning(
                f"PO generation failed: {e.message}",
                extra={"wo_id": self.wo_id, "vendor_id": self.vendor_id},
            )
            raise

        self.error = None
        self.result = created
        self.is_open = False
        logger.info(
            f"Generated PO {created.po_id} with {len(request.lines)} line(s)",
            extra={"wo_id": self.wo_id, "vendor_id": self.vendor_id, "po_id": created.po_id},
        )
        return created


def preferred_source(ipn: str, prices: Iterable[PriceRecord]) -> Optional[PreferredSource]:
    """Cheapest vendor in the part's price history; None without a vendor"""
    candidates = [p for p in prices if p.vendor_id]
    if not candidates:
        return None
    best = min(candidates, key=lambda p: p.unit_price)
    return PreferredSource(ipn=ipn, vendor_id=best.vendor_id, unit_price=best.unit_price)


def suggest_purchase_orders(
    lines: Iterable[ResolvedBOMLine],
    sources: Mapping[str, PreferredSource],
) -> POSuggestionSet:
    """
    Group shortage lines into one draft order per preferred vendor.

    Parts without a preferred vendor are reported in `unassigned`.
    """
    by_vendor: Dict[str, List[POSuggestionLine]] = {}
    unassigned: List[str] = []

    for line in shortage_lines(lines):
        source = sources.get(line.ipn)
        if source is None:
            unassigned.append(line.ipn)
            continue
        by_vendor.setdefault(source.vendor_id, []).append(
            POSuggestionLine(
                ipn=line.ipn,
                mpn=source.mpn,
                manufacturer=source.manufacturer,
                qty_needed=line.shortage,
                estimated_unit_price=source.unit_price,
            )
        )

    suggestions = [
        POSuggestion(
            vendor_id=vendor_id,
            notes=f"Suggested order for {len(vendor_lines)} short part(s)",
            lines=vendor_lines,
        )
        for vendor_id, vendor_lines in by_vendor.items()
    ]

    if unassigned:
        logger.info(
            f"{len(unassigned)} short part(s) have no preferred vendor",
            extra={"ipns": unassigned},
        )
    return POSuggestionSet(suggestions=suggestions, unassigned=unassigned)


# ============================================================================
# Receiving
# ============================================================================

def parse_quantity(raw) -> Decimal:
    """User-entered quantity; blank or unparseable input counts as 0"""
    if raw is None:
        return ZERO
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return ZERO
        try:
            value = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not value.is_finite():
        return ZERO
    return value


def clamp_receipt_qty(raw, pending: Decimal) -> Decimal:
    """Clamp an entered quantity to [0, pending]"""
    value = parse_quantity(raw)
    if value < 0:
        return ZERO
    if value > pending:
        return pending
    return value


def receivable_lines(
    order: PurchaseOrder,
    open_statuses: Optional[Iterable[str]] = None,
) -> List[PurchaseOrderLine]:
    """Lines with pending > 0 on an order in an open state"""
    if not is_po_receivable(order.status, open_statuses):
        return []
    return [line for line in order.lines if line.pending > 0]


def expected_status_after_receipt(order: PurchaseOrder) -> str:
    if order.lines and all(line.pending == 0 for line in order.lines):
        return POStatus.RECEIVED.value
    return POStatus.PARTIAL.value


def po_totals(order: PurchaseOrder) -> Dict[str, Decimal]:
    """Ordered / received / pending quantities and order value"""
    return {
        "qty_ordered": sum((line.qty_ordered for line in order.lines), ZERO),
        "qty_received": sum((line.qty_received for line in order.lines), ZERO),
        "qty_pending": sum((line.pending for line in order.lines), ZERO),
        "order_value": sum((line.line_total for line in order.lines), ZERO),
    }


class ReceivingSession:
    """
    Receive dialog for one purchase order.

    Entered values are kept as typed and clamped only when building the
    submission. The receivable set is always derived from the current
    order, so a refreshed order with a fully received line drops it.
    """

    def __init__(
        self,
        client,
        order: PurchaseOrder,
        open_statuses: Optional[Iterable[str]] = None,
    ):
        self.client = client
        self.order = order
        self.open_statuses = list(open_statuses) if open_statuses is not None else None
        self.entered: Dict[int, str] = {}
        self.is_open = True
        self.error: Optional[str] = None

    @property
    def is_receivable(self) -> bool:
        return is_po_receivable(self.order.status, self.open_statuses)

    @property
    def lines(self) -> List[PurchaseOrderLine]:
        return receivable_lines(self.order, self.open_statuses)

    def _line(self, line_id: int) -> PurchaseOrderLine:
        for line in self.order.lines:
            if line.id == line_id:
                return line
        raise NotFoundError("PO line", line_id)

    def enter(self, line_id: int, raw) -> None:
        line = self._line(line_id)
        if line.pending <= 0 or not self.is_receivable:
            raise InvalidStateError(
                f"Line {line_id} is not receivable",
                current_state=self.order.status,
                allowed_states=self.open_statuses or get_allowed_receipt_statuses(),
            )
        self.entered[line_id] = "" if raw is None else str(raw)

    def clamped(self) -> Dict[int, Decimal]:
        """Entered quantities clamped to each line's pending qty"""
        result: Dict[int, Decimal] = {}
        for line in self.lines:
            if line.id in self.entered:
                result[line.id] = clamp_receipt_qty(self.entered[line.id], line.pending)
        return result

    def receipt_lines(self) -> List[ReceiptLine]:
        return [
            ReceiptLine(line_id=line_id, qty=qty)
            for line_id, qty in self.clamped().items()
            if qty > 0
        ]

    @property
    def can_submit(self) -> bool:
        return self.is_receivable and bool(self.receipt_lines())

    async def submit(self, skip_inspection: bool = False) -> PurchaseOrder:
        """
        Send the clamped receipt and refresh from the server's order.

        On rejection the dialog stays open, entered values are kept and
        the error is re-raised.
        """
        if not self.is_receivable:
            raise InvalidStateError(
                f"Purchase order {self.order.id} is not open for receiving",
                current_state=self.order.status,
                allowed_states=self.open_statuses or get_allowed_receipt_statuses(),
            )
        lines = self.receipt_lines()
        if not lines:
            raise ValidationError("Enter a quantity to receive on at least one line")

        try:
            updated = await self.client.submit_receipt(
                self.order.id, lines, skip_inspection=skip_inspection
            )
        except ZRPException as e:
            self.error = e.message
            logger.warning(
                f"Receipt for PO {self.order.id} rejected: {e.message}",
                extra={"po_id": self.order.id, "line_count": len(lines)},
            )
            raise

        expected = expected_status_after_receipt(updated)
        if updated.status != expected:
            logger.warning(
                f"PO {updated.id} status after receipt is '{updated.status}', expected '{expected}'",
                extra={"po_id": updated.id},
            )

        logger.info(
            f"Received {len(lines)} line(s) on PO {self.order.id}",
            extra={"po_id": self.order.id, "skip_inspection": skip_inspection},
        )
        self.order = updated
        self.entered = {}
        self.error = None
        self.is_open = False
        return updated
