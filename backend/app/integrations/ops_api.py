"""
Operations API client.

Async httpx wrapper around the upstream API that owns parts, BOMs,
inventory, purchase orders, quotes and firmware campaigns. Responses
arrive wrapped as ``{"data": ..., "meta": ...}``; errors as ``{"error": msg}``.

Failures are mapped onto app.exceptions:
- 404 -> NotFoundError
- any other non-2xx or an unparseable body -> IntegrationError
- connection errors and timeouts -> ServiceUnavailableError
"""
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.settings import get_settings
from app.exceptions import IntegrationError, NotFoundError, ServiceUnavailableError
from app.logging_config import get_logger
from app.schemas.bom import BOMNode, WhereUsedEntry
from app.schemas.campaign import FirmwareCampaign
from app.schemas.costing import CostEntry
from app.schemas.part import Part
from app.schemas.purchasing import (
    PriceRecord,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderCreated,
    ReceiptLine,
    Vendor,
)
from app.schemas.quote import Quote
from app.schemas.work_order import WorkOrder, WorkOrderBOM

logger = get_logger(__name__)

SERVICE_NAME = "Operations API"

ModelT = TypeVar("ModelT", bound=BaseModel)

_ENVELOPE_KEYS = {"data", "meta", "error"}


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload and set(payload) <= _ENVELOPE_KEYS:
        return payload["data"]
    return payload


class OpsApiClient:
    """Collaborator used by every detail view; one instance per application."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        headers = {"Accept": "application/json"}
        api_key = api_key if api_key is not None else settings.OPS_API_KEY
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.OPS_API_URL).rstrip("/"),
            headers=headers,
            timeout=timeout or settings.OPS_API_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OpsApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        resource: str,
        resource_id: Any = None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out", extra={"path": path})
            raise ServiceUnavailableError(SERVICE_NAME, "timed out") from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}", extra={"path": path})
            raise ServiceUnavailableError(SERVICE_NAME, "is unreachable") from e

        if response.status_code == 404:
            raise NotFoundError(resource, resource_id)

        if response.is_error:
            message = response.reason_phrase or "request failed"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            logger.warning(
                f"{method} {path} returned {response.status_code}: {message}",
                extra={"path": path, "upstream_status": response.status_code},
            )
            raise IntegrationError(SERVICE_NAME, message, upstream_status=response.status_code)

        try:
            return _unwrap(response.json())
        except ValueError as e:
            raise IntegrationError(SERVICE_NAME, f"invalid JSON from {path}") from e

    @staticmethod
    def _parse(model: Type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(f"Malformed response from {path}", extra={"path": path, "errors": e.errors()})
            raise IntegrationError(SERVICE_NAME, f"malformed response from {path}") from e

    def _parse_list(self, model: Type[ModelT], data: Any, path: str) -> List[ModelT]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise IntegrationError(SERVICE_NAME, f"expected a list from {path}")
        return [self._parse(model, item, path) for item in data]

    # ------------------------------------------------------------------
    # Parts / BOM / cost
    # ------------------------------------------------------------------

    async def fetch_part(self, ipn: str) -> Part:
        path = f"/parts/{ipn}"
        return self._parse(Part, await self._request("GET", path, resource="Part", resource_id=ipn), path)

    async def fetch_parts(self) -> List[Part]:
        data = await self._request("GET", "/parts", resource="Parts", params={"limit": 0})
        return self._parse_list(Part, data, "/parts")

    async def fetch_bom(self, ipn: str) -> BOMNode:
        path = f"/parts/{ipn}/bom"
        return self._parse(BOMNode, await self._request("GET", path, resource="BOM", resource_id=ipn), path)

    async def fetch_cost(self, ipn: str) -> CostEntry:
        path = f"/parts/{ipn}/cost"
        data = await self._request("GET", path, resource="Cost", resource_id=ipn)
        if isinstance(data, dict):
            data = {"ipn": ipn, **data}
        return self._parse(CostEntry, data, path)

    async def fetch_where_used(self, ipn: str) -> List[WhereUsedEntry]:
        path = f"/parts/{ipn}/where-used"
        data = await self._request("GET", path, resource="Part", resource_id=ipn)
        return self._parse_list(WhereUsedEntry, data, path)

    async def fetch_prices(self, ipn: str) -> List[PriceRecord]:
        path = f"/prices/{ipn}"
        data = await self._request("GET", path, resource="Price history", resource_id=ipn)
        return self._parse_list(PriceRecord, data, path)

    # ------------------------------------------------------------------
    # Work orders
    # ------------------------------------------------------------------

    async def fetch_work_order(self, wo_id: str) -> WorkOrder:
        path = f"/workorders/{wo_id}"
        data = await self._request("GET", path, resource="Work order", resource_id=wo_id)
        return self._parse(WorkOrder, data, path)

    async def fetch_work_order_bom(self, wo_id: str) -> WorkOrderBOM:
        path = f"/workorders/{wo_id}/bom"
        data = await self._request("GET", path, resource="Work order", resource_id=wo_id)
        return self._parse(WorkOrderBOM, data, path)

    # ------------------------------------------------------------------
    # Vendors / purchase orders
    # ------------------------------------------------------------------

    async def fetch_vendors(self, active_only: bool = False) -> List[Vendor]:
        data = await self._request("GET", "/vendors", resource="Vendors")
        vendors = self._parse_list(Vendor, data, "/vendors")
        if active_only:
            vendors = [v for v in vendors if v.is_active]
        return vendors

    async def fetch_purchase_order(self, po_id: str) -> PurchaseOrder:
        path = f"/pos/{po_id}"
        data = await self._request("GET", path, resource="Purchase order", resource_id=po_id)
        return self._parse(PurchaseOrder, data, path)

    async def create_purchase_order(self, request: PurchaseOrderCreate) -> PurchaseOrderCreated:
        # Quantities and prices go out as JSON numbers
        body = request.model_dump(exclude_none=True)
        for line in body["lines"]:
            for key in ("qty_ordered", "unit_price"):
                if key in line:
                    line[key] = float(line[key])
        data = await self._request("POST", "/pos", resource="Purchase order", json=body)
        if not isinstance(data, dict) or not (data.get("po_id") or data.get("id")):
            raise IntegrationError(SERVICE_NAME, "order creation returned no id")
        lines = data.get("lines")
        return PurchaseOrderCreated(
            po_id=data.get("po_id") or data["id"],
            lines=len(lines) if isinstance(lines, list) else (lines or len(request.lines)),
        )

    async def submit_receipt(
        self,
        po_id: str,
        lines: List[ReceiptLine],
        skip_inspection: bool = False,
    ) -> PurchaseOrder:
        """Receive quantities; returns the refreshed order"""
        path = f"/pos/{po_id}/receive"
        body = {
            "lines": [{"id": line.line_id, "qty": float(line.qty)} for line in lines],
            "skip_inspection": skip_inspection,
        }
        data = await self._request(
            "POST", path, resource="Purchase order", resource_id=po_id, json=body
        )
        return self._parse(PurchaseOrder, data, path)

    # ------------------------------------------------------------------
    # Quotes / firmware campaigns
    # ------------------------------------------------------------------

    async def fetch_quote(self, quote_id: str) -> Quote:
        path = f"/quotes/{quote_id}"
        data = await self._request("GET", path, resource="Quote", resource_id=quote_id)
        return self._parse(Quote, data, path)

    async def fetch_campaign(self, campaign_id: str) -> FirmwareCampaign:
        path = f"/firmware/{campaign_id}"
        data = await self._request("GET", path, resource="Firmware campaign", resource_id=campaign_id)
        return self._parse(FirmwareCampaign, data, path)
