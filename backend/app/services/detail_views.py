"""
Detail View Loaders

Each loader fetches the aspects of one screen concurrently and converts
every failure into local section state:
- the primary entity missing -> view state "not_found"
- a dependent fetch failing -> that section "failed" with a scoped message
- nothing here raises for a fetch failure

Mutations (PO generation, receipts) are round trips: the returned view is
rebuilt from the server's response, never from local arithmetic.
"""
import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from app.core.settings import get_settings
from app.core.status_config import is_po_receivable
from app.exceptions import NotFoundError, ZRPException
from app.logging_config import get_logger
from app.schemas.bom import BOMResolution, WhereUsedEntry
from app.schemas.costing import CostSummary
from app.schemas.part import Part
from app.schemas.purchasing import (
    POSuggestionSet,
    PreferredSource,
    PurchaseOrder,
    PurchaseOrderCreated,
    Vendor,
)
from app.schemas.views import (
    BOMSection,
    PartDetailView,
    QuoteCostingSection,
    QuoteCostingView,
    ReceivingView,
    Section,
    SectionState,
    ShortageSection,
    ViewState,
    WorkOrderShortageView,
)
from app.services.bom_explosion import BOMTreeView, is_assembly, resolve_bom
from app.services.costing import CostCatalog, summarize_cost
from app.services.inventory_netting import ShortageView, net_requirements, summarize_lines
from app.services.procurement import (
    GeneratePODialog,
    ReceivingSession,
    po_totals,
    preferred_source,
    receivable_lines,
    suggest_purchase_orders,
)
from app.services.quote_costing import cost_quote

logger = get_logger(__name__)

NO_COST = "No cost information available"
NO_BOM = "No BOM data"
NO_WHERE_USED = "Where-used information unavailable"
NO_VENDORS = "Vendor list unavailable"

Outcome = Tuple[Optional[Any], Optional[ZRPException]]


async def _attempt(coro: Awaitable[Any], label: str, **context) -> Outcome:
    """Await one fetch; return (value, None) or (None, error)"""
    try:
        return await coro, None
    except NotFoundError as e:
        logger.info(f"{label}: {e.message}", extra=context)
        return None, e
    except ZRPException as e:
        logger.warning(
            f"{label} failed: {e.message}",
            extra={**context, "error_code": e.error_code},
        )
        return None, e


def _section(section_type, value: Any, error: Optional[ZRPException], fallback: str):
    if error is None:
        return section_type(state=SectionState.LOADED, data=value)
    if isinstance(error, NotFoundError):
        return section_type(state=SectionState.NOT_FOUND, message=fallback)
    return section_type(state=SectionState.FAILED, message=fallback)


def _primary_state(error: Optional[ZRPException]) -> Tuple[ViewState, Optional[str]]:
    if error is None:
        return ViewState.LOADED, None
    if isinstance(error, NotFoundError):
        return ViewState.NOT_FOUND, error.message
    return ViewState.FAILED, error.message


# ============================================================================
# Part detail
# ============================================================================

async def load_part_detail(
    client,
    ipn: str,
    build_qty: Decimal = Decimal("1"),
    expanded_depth: Optional[int] = None,
) -> PartDetailView:
    """
    Part fields, BOM tree, cost and where-used, loaded independently.

    The BOM branch waits only for the part record (to read is_assembly);
    cost and where-used never wait on it.
    """
    part_task = asyncio.ensure_future(_attempt(client.fetch_part(ipn), "Part fetch", ipn=ipn))

    async def load_bom() -> Tuple[Optional[BOMResolution], Optional[CostCatalog], Optional[List[Part]]]:
        part, _ = await part_task
        if not is_assembly(part, ipn):
            return None, None, None
        resolution, (parts, _) = await asyncio.gather(
            resolve_bom(client, ipn, build_qty),
            _attempt(client.fetch_parts(), "Parts catalog fetch", ipn=ipn),
        )
        catalog = CostCatalog.from_parts(parts) if parts is not None else None
        return resolution, catalog, parts

    (resolution, catalog, parts), (entry, cost_error), (where_used, where_used_error) = (
        await asyncio.gather(
            load_bom(),
            _attempt(client.fetch_cost(ipn), "Cost fetch", ipn=ipn),
            _attempt(client.fetch_where_used(ipn), "Where-used fetch", ipn=ipn),
        )
    )
    part, part_error = await part_task
    state, message = _primary_state(part_error)
    assembly = is_assembly(part, ipn)

    # BOM
    if resolution is None:
        bom = Section[BOMSection](state=SectionState.SKIPPED, message="Not an assembly")
    elif not resolution.ok:
        bom = Section[BOMSection](state=SectionState.FAILED, message=resolution.error or NO_BOM)
    else:
        tree = BOMTreeView(resolution.nodes, expanded_depth=expanded_depth)
        availability = []
        bom_summary = None
        if parts is not None:
            on_hand = {p.ipn: p.current_stock or Decimal("0") for p in parts}
            availability = net_requirements(resolution.nodes, on_hand)
            bom_summary = summarize_lines(availability)
        bom = Section[BOMSection](
            state=SectionState.LOADED,
            data=BOMSection(
                build_qty=resolution.build_qty,
                rows=tree.visible_rows(),
                availability=availability,
                summary=bom_summary,
            ),
        )

    # Cost
    summary = summarize_cost(ipn, entry, resolution, catalog)
    if summary is not None and cost_error is not None:
        # Rollup survived a failed cost fetch; last-price facts are unknown
        if summary.has_any:
            cost = Section[CostSummary](state=SectionState.LOADED, data=summary, message=NO_COST)
        else:
            cost = _section(Section[CostSummary], None, cost_error, NO_COST)
    elif summary is not None:
        cost = Section[CostSummary](state=SectionState.LOADED, data=summary)
    else:
        cost = _section(Section[CostSummary], None, cost_error, NO_COST)

    return PartDetailView(
        ipn=ipn,
        state=state,
        message=message,
        part=part,
        is_assembly=assembly,
        bom=bom,
        cost=cost,
        where_used=_section(Section[List[WhereUsedEntry]], where_used, where_used_error, NO_WHERE_USED),
    )


# ============================================================================
# Work order shortages / procurement
# ============================================================================

async def load_work_order_shortages(client, wo_id: str) -> WorkOrderShortageView:
    """Work order, its netted BOM and the active vendor list"""
    settings = get_settings()
    (work_order, wo_error), (wo_bom, bom_error), (vendors, vendor_error) = await asyncio.gather(
        _attempt(client.fetch_work_order(wo_id), "Work order fetch", wo_id=wo_id),
        _attempt(client.fetch_work_order_bom(wo_id), "Work order BOM fetch", wo_id=wo_id),
        _attempt(client.fetch_vendors(active_only=True), "Vendor fetch", wo_id=wo_id),
    )
    state, message = _primary_state(wo_error)

    if wo_bom is None:
        shortages = _section(Section[ShortageSection], None, bom_error, NO_BOM)
        has_shortage = False
    else:
        view = ShortageView.from_work_order_bom(
            wo_bom, trust_server=settings.TRUST_SERVER_SHORTAGE_STATUS
        )
        has_shortage = view.has_shortage
        shortages = Section[ShortageSection](
            state=SectionState.LOADED,
            data=ShortageSection(
                assembly_ipn=wo_bom.assembly_ipn,
                qty=wo_bom.qty,
                lines=view.lines,
                summary=view.summary,
            ),
        )

    return WorkOrderShortageView(
        wo_id=wo_id,
        state=state,
        message=message,
        work_order=work_order,
        shortages=shortages,
        vendors=_section(Section[List[Vendor]], vendors, vendor_error, NO_VENDORS),
        can_generate_po=has_shortage,
    )


async def generate_po_for_work_order(
    client, wo_id: str, vendor_id: Optional[str]
) -> PurchaseOrderCreated:
    """Order the work order's shortage lines from one vendor"""
    wo_bom = await client.fetch_work_order_bom(wo_id)
    view = ShortageView.from_work_order_bom(
        wo_bom, trust_server=get_settings().TRUST_SERVER_SHORTAGE_STATUS
    )
    dialog = GeneratePODialog(client, view, wo_id=wo_id)
    dialog.vendor_id = vendor_id
    return await dialog.submit()


async def load_po_suggestions(client, wo_id: str) -> POSuggestionSet:
    """Per-vendor draft orders for a work order's shortages"""
    wo_bom = await client.fetch_work_order_bom(wo_id)
    view = ShortageView.from_work_order_bom(
        wo_bom, trust_server=get_settings().TRUST_SERVER_SHORTAGE_STATUS
    )
    short = view.shortages
    outcomes = await asyncio.gather(
        *(
            _attempt(client.fetch_prices(line.ipn), "Price history fetch", ipn=line.ipn)
            for line in short
        )
    )

    sources: Dict[str, PreferredSource] = {}
    for line, (prices, _) in zip(short, outcomes):
        source = preferred_source(line.ipn, prices or [])
        if source is not None:
            sources[line.ipn] = source
    return suggest_purchase_orders(view.lines, sources)


# ============================================================================
# Purchase order receiving
# ============================================================================

def _vendor_section(order: Optional[PurchaseOrder], vendors, vendor_error) -> Section[Vendor]:
    if vendor_error is not None:
        return _section(Section[Vendor], None, vendor_error, NO_VENDORS)
    if order is None or not order.vendor_id:
        return Section[Vendor](state=SectionState.SKIPPED)
    for vendor in vendors or []:
        if vendor.id == order.vendor_id:
            return Section[Vendor](state=SectionState.LOADED, data=vendor)
    return Section[Vendor](state=SectionState.NOT_FOUND, message=f"Vendor {order.vendor_id} not found")


def build_receiving_view(
    po_id: str,
    order: Optional[PurchaseOrder],
    vendor: Section[Vendor],
    error: Optional[ZRPException] = None,
) -> ReceivingView:
    state, message = _primary_state(error)
    if order is None:
        return ReceivingView(po_id=po_id, state=state, message=message, vendor=vendor)

    lines = receivable_lines(order)
    return ReceivingView(
        po_id=po_id,
        state=state,
        message=message,
        order=order,
        vendor=vendor,
        is_receivable=is_po_receivable(order.status),
        receivable_lines=lines,
        pending={line.id: line.pending for line in lines},
        totals=po_totals(order),
    )


async def load_receiving_view(client, po_id: str) -> ReceivingView:
    (order, order_error), (vendors, vendor_error) = await asyncio.gather(
        _attempt(client.fetch_purchase_order(po_id), "Purchase order fetch", po_id=po_id),
        _attempt(client.fetch_vendors(active_only=False), "Vendor fetch", po_id=po_id),
    )
    return build_receiving_view(
        po_id, order, _vendor_section(order, vendors, vendor_error), order_error
    )


async def receive_purchase_order(
    client,
    po_id: str,
    entered: Dict[int, str],
    skip_inspection: bool = False,
) -> ReceivingView:
    """
    Submit a receipt and return the view rebuilt from the server's order.

    Raises the validation or upstream error unchanged so the caller can keep
    its form open.
    """
    order = await client.fetch_purchase_order(po_id)
    session = ReceivingSession(client, order)
    for line_id, raw in entered.items():
        session.enter(line_id, raw)
    updated = await session.submit(skip_inspection=skip_inspection)

    vendors, vendor_error = await _attempt(
        client.fetch_vendors(active_only=False), "Vendor fetch", po_id=po_id
    )
    return build_receiving_view(po_id, updated, _vendor_section(updated, vendors, vendor_error))


# ============================================================================
# Quote costing
# ============================================================================

async def load_quote_costing(client, quote_id: str) -> QuoteCostingView:
    (quote, quote_error), (parts, catalog_error) = await asyncio.gather(
        _attempt(client.fetch_quote(quote_id), "Quote fetch", quote_id=quote_id),
        _attempt(client.fetch_parts(), "Parts catalog fetch", quote_id=quote_id),
    )
    state, message = _primary_state(quote_error)

    if quote is None:
        costing = Section[QuoteCostingSection](state=SectionState.SKIPPED)
    elif parts is None:
        costing = _section(Section[QuoteCostingSection], None, catalog_error, NO_COST)
    else:
        lines, totals = cost_quote(quote, CostCatalog.from_parts(parts))
        costing = Section[QuoteCostingSection](
            state=SectionState.LOADED,
            data=QuoteCostingSection(lines=lines, totals=totals),
        )

    return QuoteCostingView(
        quote_id=quote_id,
        state=state,
        message=message,
        quote=quote,
        costing=costing,
    )
