"""
Unit Tests for Detail View Loaders

Focus on isolation: one failing aspect never hides the others, and a
missing primary entity becomes a not-found view state.
"""
import asyncio
from decimal import Decimal

import pytest

from app.exceptions import IntegrationError, ValidationError
from app.schemas.bom import WhereUsedEntry
from app.schemas.costing import CostEntry
from app.schemas.purchasing import PriceRecord
from app.schemas.views import SectionState, ViewState
from app.services.detail_views import (
    generate_po_for_work_order,
    load_part_detail,
    load_po_suggestions,
    load_quote_costing,
    load_receiving_view,
    load_work_order_shortages,
    receive_purchase_order,
)
from tests.factories import (
    create_test_part,
    create_test_po,
    create_test_quote,
    create_test_vendor,
    create_test_wo_bom,
    create_test_work_order,
    make_bom,
    make_line,
)
from tests.fakes import FakeOpsClient


@pytest.fixture
def part_ops():
    ops = FakeOpsClient()
    ops.parts["ASY-001"] = create_test_part("ASY-001")
    ops.parts["R-001"] = create_test_part("R-001", cost="0.01", current_stock=100)
    ops.parts["C-001"] = create_test_part("C-001", cost="0.10", current_stock=1)
    ops.boms["ASY-001"] = make_bom(
        "ASY-001", children=[make_bom("R-001", qty=4), make_bom("C-001", qty=2)]
    )
    ops.costs["ASY-001"] = CostEntry(ipn="ASY-001", last_unit_price=Decimal("1.25"))
    ops.where_used["R-001"] = [WhereUsedEntry(assembly_ipn="ASY-001", qty=Decimal("4"))]
    return ops


# ============================================================================
# Part detail
# ============================================================================

class TestPartDetail:

    def test_everything_loads(self, part_ops):
        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))

        assert view.state == ViewState.LOADED
        assert view.is_assembly is True
        assert view.bom.state == SectionState.LOADED
        assert [r.ipn for r in view.bom.data.rows] == ["ASY-001", "R-001", "C-001"]
        assert view.cost.data.bom_cost == Decimal("0.24")
        assert view.cost.data.last_unit_price == Decimal("1.25")
        # C-001: 2 required, 1 on hand
        assert view.bom.data.summary.status_counts["shortage"] == 1

    def test_cost_failure_still_renders_bom(self, part_ops):
        part_ops.fail("fetch_cost")
        part_ops.fail("fetch_parts")

        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))

        assert view.state == ViewState.LOADED
        assert view.bom.state == SectionState.LOADED
        assert len(view.bom.data.rows) == 3
        assert view.cost.state == SectionState.FAILED
        assert view.cost.message == "No cost information available"

    def test_cost_fetch_failure_keeps_rollup_with_note(self, part_ops):
        """Catalog still loads, so the rollup shows; the missing cost facts are called out"""
        part_ops.fail("fetch_cost")

        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))

        assert view.cost.state == SectionState.LOADED
        assert view.cost.message == "No cost information available"
        assert view.cost.data.bom_cost == Decimal("0.24")
        assert view.cost.data.bom_cost_source == "rollup"
        assert view.cost.data.last_unit_price is None

    def test_cost_fetch_failure_with_zero_rollup_is_failed(self, part_ops):
        part_ops.fail("fetch_cost")
        part_ops.parts["R-001"] = create_test_part("R-001", cost="0")
        part_ops.parts["C-001"] = create_test_part("C-001", cost="0")

        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))

        assert view.cost.state == SectionState.FAILED
        assert view.cost.data is None
        assert view.cost.message == "No cost information available"

    def test_bom_failure_still_renders_part_and_cost(self, part_ops):
        part_ops.fail("fetch_bom")

        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))

        assert view.part.ipn == "ASY-001"
        assert view.bom.state == SectionState.FAILED
        assert view.bom.message == "No BOM data"
        assert view.cost.state == SectionState.LOADED
        assert view.cost.data.last_unit_price == Decimal("1.25")

    def test_non_assembly_never_fetches_bom(self, part_ops):
        view = asyncio.run(load_part_detail(part_ops, "R-001"))

        assert view.is_assembly is False
        assert view.bom.state == SectionState.SKIPPED
        assert part_ops.calls_to("fetch_bom") == 0
        assert view.where_used.data[0].assembly_ipn == "ASY-001"

    def test_explicit_flag_overrides_prefix(self, part_ops):
        part_ops.parts["KIT-9"] = create_test_part("KIT-9", is_assembly=True)
        part_ops.boms["KIT-9"] = make_bom("KIT-9", children=[make_bom("R-001")])
        view = asyncio.run(load_part_detail(part_ops, "KIT-9"))
        assert view.bom.state == SectionState.LOADED

    def test_unknown_part_is_not_found(self, part_ops):
        view = asyncio.run(load_part_detail(part_ops, "R-404"))
        assert view.state == ViewState.NOT_FOUND
        assert view.part is None

    def test_cycle_is_a_failed_section(self, part_ops):
        part_ops.boms["ASY-001"] = make_bom("ASY-001", children=[make_bom("ASY-001")])
        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))
        assert view.state == ViewState.LOADED
        assert view.bom.state == SectionState.FAILED
        assert "cycle detected" in view.bom.message

    def test_zero_rollup_hidden(self, part_ops):
        part_ops.parts["R-001"] = create_test_part("R-001", cost="0")
        part_ops.parts["C-001"] = create_test_part("C-001", cost="0")
        view = asyncio.run(load_part_detail(part_ops, "ASY-001"))
        assert view.cost.data.show_bom_cost is False


# ============================================================================
# Work order
# ============================================================================

@pytest.fixture
def wo_ops():
    ops = FakeOpsClient()
    ops.work_orders["WO-0001"] = create_test_work_order("WO-0001")
    ops.work_order_boms["WO-0001"] = create_test_wo_bom(
        "WO-0001", [make_line("R-001", 100, 60), make_line("C-001", 10, 50)]
    )
    ops.vendors = [create_test_vendor("V-001"), create_test_vendor("V-002", status="inactive")]
    return ops


class TestWorkOrderShortages:

    def test_loads_lines_summary_and_active_vendors(self, wo_ops):
        view = asyncio.run(load_work_order_shortages(wo_ops, "WO-0001"))
        assert view.state == ViewState.LOADED
        assert view.shortages.data.summary.status_counts == {"ok": 1, "low": 0, "shortage": 1}
        assert [v.id for v in view.vendors.data] == ["V-001"]
        assert view.can_generate_po is True

    def test_vendor_failure_is_local(self, wo_ops):
        wo_ops.fail("fetch_vendors")
        view = asyncio.run(load_work_order_shortages(wo_ops, "WO-0001"))
        assert view.shortages.state == SectionState.LOADED
        assert view.vendors.state == SectionState.FAILED

    def test_missing_work_order(self, wo_ops):
        view = asyncio.run(load_work_order_shortages(wo_ops, "WO-9999"))
        assert view.state == ViewState.NOT_FOUND
        assert view.can_generate_po is False

    def test_generate_orders_only_shortages(self, wo_ops):
        created = asyncio.run(generate_po_for_work_order(wo_ops, "WO-0001", "V-001"))
        assert created.lines == 1
        assert wo_ops.created_orders[0].lines[0].ipn == "R-001"
        assert wo_ops.created_orders[0].lines[0].qty_ordered == Decimal("40")

    def test_generate_without_vendor_sends_nothing(self, wo_ops):
        with pytest.raises(ValidationError):
            asyncio.run(generate_po_for_work_order(wo_ops, "WO-0001", None))
        assert wo_ops.calls_to("create_purchase_order") == 0

    def test_suggestions_use_cheapest_vendor(self, wo_ops):
        wo_ops.prices["R-001"] = [
            PriceRecord(ipn="R-001", vendor_id="V-001", unit_price=Decimal("0.02")),
            PriceRecord(ipn="R-001", vendor_id="V-002", unit_price=Decimal("0.01")),
        ]
        result = asyncio.run(load_po_suggestions(wo_ops, "WO-0001"))
        assert [s.vendor_id for s in result.suggestions] == ["V-002"]
        assert result.unassigned == []

    def test_suggestion_price_failure_leaves_part_unassigned(self, wo_ops):
        wo_ops.fail("fetch_prices")
        result = asyncio.run(load_po_suggestions(wo_ops, "WO-0001"))
        assert result.suggestions == []
        assert result.unassigned == ["R-001"]


# ============================================================================
# Receiving
# ============================================================================

@pytest.fixture
def po_ops():
    ops = FakeOpsClient()
    ops.vendors = [create_test_vendor("V-001", name="DigiKey")]
    ops.purchase_orders["PO-0001"] = create_test_po(
        "PO-0001", status="submitted", lines=[("R-001", 100, 40, "0.01"), ("C-001", 10, 0, "0.10")]
    )
    return ops


class TestReceivingView:

    def test_lists_pending(self, po_ops):
        view = asyncio.run(load_receiving_view(po_ops, "PO-0001"))
        assert view.is_receivable is True
        assert view.pending == {1: Decimal("60"), 2: Decimal("10")}
        assert view.vendor.data.name == "DigiKey"

    def test_vendor_failure_is_local(self, po_ops):
        po_ops.fail("fetch_vendors")
        view = asyncio.run(load_receiving_view(po_ops, "PO-0001"))
        assert view.state == ViewState.LOADED
        assert view.vendor.state == SectionState.FAILED
        assert len(view.receivable_lines) == 2

    def test_missing_order(self, po_ops):
        view = asyncio.run(load_receiving_view(po_ops, "PO-9999"))
        assert view.state == ViewState.NOT_FOUND

    def test_receive_refreshes_from_server(self, po_ops):
        view = asyncio.run(receive_purchase_order(po_ops, "PO-0001", {1: "999", 2: "4"}))
        assert view.order.status == "partial"
        assert view.pending == {2: Decimal("6")}

    def test_receive_rejected_propagates(self, po_ops):
        po_ops.fail("submit_receipt", IntegrationError("Operations API", "locked"))
        with pytest.raises(IntegrationError):
            asyncio.run(receive_purchase_order(po_ops, "PO-0001", {1: "5"}))


# ============================================================================
# Quote costing
# ============================================================================

class TestQuoteCosting:

    def test_costing_uses_catalog(self):
        ops = FakeOpsClient()
        ops.parts["R-001"] = create_test_part("R-001", cost="0.01")
        ops.quotes["Q-0001"] = create_test_quote("Q-0001", lines=[("R-001", 100, "0.05")])

        view = asyncio.run(load_quote_costing(ops, "Q-0001"))

        assert view.costing.data.totals.margin == Decimal("4.00")

    def test_catalog_failure_keeps_quote(self):
        ops = FakeOpsClient()
        ops.fail("fetch_parts")
        ops.quotes["Q-0001"] = create_test_quote("Q-0001", lines=[("R-001", 100, "0.05")])

        view = asyncio.run(load_quote_costing(ops, "Q-0001"))

        assert view.state == ViewState.LOADED
        assert view.quote.lines[0].ipn == "R-001"
        assert view.costing.state == SectionState.FAILED

    def test_missing_quote(self):
        view = asyncio.run(load_quote_costing(FakeOpsClient(), "Q-404"))
        assert view.state == ViewState.NOT_FOUND
