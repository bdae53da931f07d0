"""
Firmware Campaign Pydantic Schemas
"""
from typing import Optional

from pydantic import BaseModel, Field


class FirmwareCampaign(BaseModel):
    """Rollout progress snapshot; polled while running"""
    id: str
    name: str = ""
    version: Optional[str] = None
    status: str = "draft"
    total_devices: int = Field(0, ge=0)
    completed: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    pending: int = Field(0, ge=0)
