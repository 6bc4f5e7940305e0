"""Availability schedule and block schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from shop_reservations.constants import BlockType

TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class AvailabilityRuleInput(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)


class SetAvailabilityRequest(BaseModel):
    """Replace the weekly schedule of the shop (resource_id null) or of one resource"""
    resource_id: Optional[UUID] = None
    availability: List[AvailabilityRuleInput] = Field(..., min_length=1)


class AvailabilityRuleResponse(BaseModel):
    id: UUID
    shop_id: UUID
    resource_id: Optional[UUID]
    day_of_week: int
    start_time: str
    end_time: str
    is_active: Optional[bool]

    class Config:
        from_attributes = True


class BlockCreate(BaseModel):
    resource_id: Optional[UUID] = None
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = Field(None, max_length=255)
    block_type: BlockType = BlockType.CUSTOM


class BlockResponse(BaseModel):
    id: UUID
    shop_id: UUID
    resource_id: Optional[UUID]
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str]
    block_type: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
