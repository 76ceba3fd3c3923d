"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str
    venue: Optional[str] = None
    date: datetime
    registration_deadline: datetime
    max_participants: int = Field(gt=0)


class EventOut(BaseModel):
    event_id: str
    title: str
    venue: Optional[str] = None
    date: datetime
    registration_deadline: datetime
    max_participants: int
    current_participants: int
    version: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
