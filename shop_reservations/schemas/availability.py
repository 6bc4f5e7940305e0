"""Computed availability schemas"""

import datetime as dt
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel


class TimeSlot(BaseModel):
    """Candidate window; times are naive UTC"""
    start_time: dt.datetime
    end_time: dt.datetime
    available: bool
    resource_id: Optional[UUID] = None
    resource_name: Optional[str] = None


class DayAvailability(BaseModel):
    """Slots of one shop-local calendar day, ascending by start"""
    date: dt.date
    slots: List[TimeSlot] = []
