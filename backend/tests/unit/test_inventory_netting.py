"""
Unit Tests for Inventory Netting

Tests:
1. Shortage arithmetic and status classification
2. Reconciliation of server-supplied labels (drift detection)
3. Netting flattened leaves against stock
4. Aggregate summary
"""
from decimal import Decimal

import pytest

from app.core.status_config import ShortageStatus
from app.exceptions import StatusDriftError
from app.services.bom_explosion import explode_bom
from app.services.inventory_netting import (
    ShortageView,
    classify_status,
    compute_shortage,
    net_requirements,
    reconcile_line,
    summarize_lines,
)
from tests.factories import create_test_wo_bom, make_bom, make_line


class TestShortageArithmetic:

    def test_shortage_example(self):
        """100 required, 60 on hand -> 40 short"""
        assert compute_shortage(Decimal("100"), Decimal("60")) == Decimal("40")
        assert classify_status(Decimal("100"), Decimal("60")) == ShortageStatus.SHORTAGE

    def test_surplus_is_ok(self):
        assert compute_shortage(Decimal("10"), Decimal("25")) == Decimal("0")
        assert classify_status(Decimal("10"), Decimal("25")) == ShortageStatus.OK

    def test_exact_match_is_ok(self):
        assert classify_status(Decimal("10"), Decimal("10")) == ShortageStatus.OK

    def test_negative_stock_counts_fully_short(self):
        assert compute_shortage(Decimal("10"), Decimal("-2")) == Decimal("12")


class TestReconcileLine:

    def test_consistent_line_unchanged(self):
        line = make_line("R-001", 100, 60)
        result, drifted = reconcile_line(line, trust_server=False)
        assert not drifted
        assert result.shortage == Decimal("40")
        assert result.status == ShortageStatus.SHORTAGE

    def test_low_label_normalized_to_shortage(self):
        line = make_line("R-001", 100, 60, status="low")
        result, drifted = reconcile_line(line, trust_server=False)
        assert not drifted
        assert result.status == ShortageStatus.SHORTAGE

    def test_ok_label_with_shortage_is_drift(self):
        line = make_line("R-001", 100, 60, status="ok", shortage=0)
        result, drifted = reconcile_line(line, trust_server=False)
        assert drifted
        assert result.status == ShortageStatus.SHORTAGE
        assert result.shortage == Decimal("40")

    def test_strict_mode_raises(self):
        line = make_line("R-001", 100, 60, status="ok", shortage=0)
        with pytest.raises(StatusDriftError) as exc_info:
            reconcile_line(line, trust_server=False, strict=True)
        assert exc_info.value.details["expected"] == "shortage"

    def test_trusting_server_keeps_label(self):
        line = make_line("R-001", 100, 60, status="low")
        result, _ = reconcile_line(line, trust_server=True)
        assert result.status == ShortageStatus.LOW


class TestNetRequirements:

    def test_aggregates_same_ipn_across_positions(self):
        tree = make_bom(
            "ASY-001",
            children=[
                make_bom("PCA-100", qty=2, children=[make_bom("R-001", qty=3)]),
                make_bom("R-001", qty=4),
                make_bom("C-001", qty=1),
            ],
        )
        lines = net_requirements(explode_bom(tree, Decimal("5")), {"R-001": Decimal("60")})
        by_ipn = {line.ipn: line for line in lines}

        # 5 x 2 x 3 + 5 x 4 = 50
        assert by_ipn["R-001"].qty_required == Decimal("50")
        assert by_ipn["R-001"].status == ShortageStatus.OK
        assert by_ipn["C-001"].qty_on_hand == Decimal("0")
        assert by_ipn["C-001"].shortage == Decimal("5")
        assert "PCA-100" not in by_ipn
        assert [line.ipn for line in lines] == ["R-001", "C-001"]


class TestSummary:

    def test_empty_bom_gives_zero_counts(self):
        summary = summarize_lines([])
        assert summary.total_lines == 0
        assert summary.status_counts == {"ok": 0, "low": 0, "shortage": 0}
        assert summary.has_shortage is False
        assert summary.total_shortage_qty == Decimal("0")
        assert summary.partially_available == 0

    def test_counts_and_flag(self):
        lines = [
            make_line("R-001", 100, 60),
            make_line("C-001", 10, 50),
            make_line("U-001", 2, 0),
        ]
        summary = summarize_lines(lines)
        assert summary.total_lines == 3
        assert summary.status_counts["shortage"] == 2
        assert summary.status_counts["ok"] == 1
        assert summary.total_shortage_qty == Decimal("42")
        # R-001 is short with 60 on hand; U-001 has none
        assert summary.partially_available == 1
        assert summary.has_shortage is True

    def test_no_shortage_flag(self):
        summary = summarize_lines([make_line("C-001", 10, 50)])
        assert summary.has_shortage is False


class TestShortageView:

    def test_from_work_order_bom_records_drift(self):
        wo_bom = create_test_wo_bom(
            "WO-0001",
            [make_line("R-001", 100, 60, status="ok", shortage=0), make_line("C-001", 5, 5)],
        )
        view = ShortageView.from_work_order_bom(wo_bom, trust_server=False)
        assert view.has_shortage
        assert view.summary.drifted_lines == ["R-001"]
        assert [line.ipn for line in view.shortages] == ["R-001"]

    def test_low_lines_survive_as_partially_available(self):
        """A 'low' label is folded into shortage but still counted as partially stocked"""
        wo_bom = create_test_wo_bom(
            "WO-0001",
            [make_line("U-001", 4, 1, status="low"), make_line("R-001", 100, 0)],
        )
        view = ShortageView.from_work_order_bom(wo_bom, trust_server=False)
        assert view.summary.status_counts == {"ok": 0, "low": 0, "shortage": 2}
        assert view.summary.partially_available == 1
        assert view.summary.drifted_lines == []
