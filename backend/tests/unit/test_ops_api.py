"""
Unit Tests for the Operations API client

Uses httpx.MockTransport; no network.
"""
import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from app.exceptions import IntegrationError, NotFoundError, ServiceUnavailableError
from app.integrations.ops_api import OpsApiClient
from app.schemas.purchasing import POLineCreate, PurchaseOrderCreate, ReceiptLine


def _client(handler) -> OpsApiClient:
    return OpsApiClient(
        base_url="http://ops.test/api/v1",
        api_key="secret",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def _run(client: OpsApiClient, call):
    async def scenario():
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


class TestResponses:

    def test_unwraps_data_envelope(self):
        def handler(request):
            assert request.url.path == "/api/v1/parts/ASY-001/bom"
            assert request.headers["Authorization"] == "Bearer secret"
            return httpx.Response(200, json={"data": {
                "ipn": "ASY-001",
                "description": "Main board",
                "qty": 1,
                "children": [{"ipn": "R-001", "description": "10k", "qty": 4, "ref": "R1-R4", "children": None}],
            }})

        bom = _run(_client(handler), lambda c: c.fetch_bom("ASY-001"))
        assert bom.children[0].ipn == "R-001"
        assert bom.children[0].qty == Decimal("4")
        assert bom.children[0].is_leaf

    def test_bare_payload_accepted(self):
        def handler(request):
            return httpx.Response(200, json={"id": "PO-0001", "status": "SUBMITTED", "lines": None})

        po = _run(_client(handler), lambda c: c.fetch_purchase_order("PO-0001"))
        assert po.status == "submitted"
        assert po.lines == []

    def test_cost_uses_api_field_names(self):
        def handler(request):
            return httpx.Response(200, json={"data": {
                "last_unit_price": 0.05, "po_id": "PO-0007", "last_ordered": "2024-05-01", "bom_cost": 0,
            }})

        entry = _run(_client(handler), lambda c: c.fetch_cost("R-001"))
        assert entry.ipn == "R-001"
        assert entry.last_po_id == "PO-0007"
        assert entry.last_ordered_date == "2024-05-01"

    def test_active_vendor_filter(self):
        def handler(request):
            return httpx.Response(200, json={"data": [
                {"id": "V-001", "name": "DigiKey", "status": "active"},
                {"id": "V-002", "name": "Old Co", "status": "inactive"},
            ]})

        vendors = _run(_client(handler), lambda c: c.fetch_vendors(active_only=True))
        assert [v.id for v in vendors] == ["V-001"]


class TestMutations:

    def test_submit_receipt_body(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"id": "PO-0001", "status": "partial", "lines": []}})

        lines = [ReceiptLine(line_id=3, qty=Decimal("5"))]
        po = _run(_client(handler), lambda c: c.submit_receipt("PO-0001", lines, skip_inspection=True))

        assert seen["body"] == {"lines": [{"id": 3, "qty": 5.0}], "skip_inspection": True}
        assert po.status == "partial"

    def test_create_purchase_order(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["vendor_id"] == "V-001"
            return httpx.Response(200, json={"data": {"id": "PO-0042", "lines": body["lines"]}})

        request = PurchaseOrderCreate(
            vendor_id="V-001", lines=[POLineCreate(ipn="R-001", qty_ordered=Decimal("40"))]
        )
        created = _run(_client(handler), lambda c: c.create_purchase_order(request))
        assert created.po_id == "PO-0042"
        assert created.lines == 1


class TestErrors:

    def test_404_is_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error": "not found"})

        with pytest.raises(NotFoundError) as exc_info:
            _run(_client(handler), lambda c: c.fetch_quote("Q-404"))
        assert exc_info.value.details["resource_id"] == "Q-404"

    def test_server_error_message_is_kept(self):
        def handler(request):
            return httpx.Response(400, json={"error": "lines[0].qty_ordered: must be positive"})

        request = PurchaseOrderCreate(
            vendor_id="V-001", lines=[POLineCreate(ipn="R-001", qty_ordered=Decimal("1"))]
        )
        with pytest.raises(IntegrationError) as exc_info:
            _run(_client(handler), lambda c: c.create_purchase_order(request))
        assert "must be positive" in exc_info.value.message
        assert exc_info.value.details["upstream_status"] == 400

    def test_connection_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ServiceUnavailableError):
            _run(_client(handler), lambda c: c.fetch_part("R-001"))

    def test_malformed_payload(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"description": "no ipn"}})

        with pytest.raises(IntegrationError):
            _run(_client(handler), lambda c: c.fetch_part("R-001"))
