"""Status Configuration and Rules

Defines the status values the engine understands for purchase orders,
BOM shortage lines and firmware campaigns, plus the rules that gate
receiving and polling on those statuses.
"""
from enum import Enum
from typing import Iterable, List, Optional, Set

from app.core.settings import get_settings


# =============================================================================
# Purchase Order Status
# =============================================================================

class POStatus(str, Enum):
    """Purchase order lifecycle as reported by the operations API"""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PARTIAL = "partial"
    RECEIVED = "received"
    CLOSED = "closed"
    CANCELLED = "cancelled"


def get_open_po_statuses() -> Set[str]:
    """Statuses that accept receipts (configurable, default submitted/partial)"""
    return set(get_settings().OPEN_PO_STATUSES)


def is_po_receivable(status: Optional[str], open_statuses: Optional[Iterable[str]] = None) -> bool:
    """Check whether an order in `status` may be received against"""
    if not status:
        return False
    allowed = set(open_statuses) if open_statuses is not None else get_open_po_statuses()
    return status.lower() in allowed


def get_allowed_receipt_statuses() -> List[str]:
    return sorted(get_open_po_statuses())


# =============================================================================
# BOM Shortage Status
# =============================================================================

class ShortageStatus(str, Enum):
    """Per-line availability label on a resolved BOM"""
    OK = "ok"
    LOW = "low"  # legacy server label for "partially available"
    SHORTAGE = "shortage"


# =============================================================================
# Firmware Campaign Status
# =============================================================================

class CampaignStatus(str, Enum):
    """Firmware rollout campaign status"""
    DRAFT = "draft"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_CAMPAIGN_STATUSES: Set[str] = {CampaignStatus.RUNNING.value}


def is_campaign_active(status: Optional[str]) -> bool:
    """Only running campaigns are polled"""
    return bool(status) and status.lower() in ACTIVE_CAMPAIGN_STATUSES
