"""
EPG (Electronic Program Guide) data models.
"""
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class Program(BaseModel):
    """TV program/show model from EPG data."""
    id: str  # Generated unique ID
    channel_id: str
    program_id: Optional[str] = None  # External id from the guide source
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[str] = None
    start_time: datetime
    end_time: datetime
