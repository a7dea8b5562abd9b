from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import uuid4

from sqlmodel import Column, Field, JSON, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallStatus(str, Enum):
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    FORWARDING = "forwarding"
    ENDED = "ended"

    @property
    def rank(self) -> int:
        return list(CallStatus).index(self)


class PreferenceCategory(str, Enum):
    FOOD = "food"
    ACTIVITIES = "activities"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"

    @property
    def field_name(self) -> str:
        return f"{self.value}_preferences"


class PreferenceAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class CallRecord(SQLModel, table=True):
    __tablename__ = "calls"

    id: str = Field(primary_key=True)
    caller_phone_number: Optional[str] = Field(default=None, index=True)
    status: str = Field(default=CallStatus.RINGING.value)

    # Each entry is {"name", "address", "placeId"}; replaced on every search.
    last_search_results: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))

    directions_sent: bool = Field(default=False)
    directions_place_name: Optional[str] = Field(default=None)
    directions_place_address: Optional[str] = Field(default=None)
    directions_sent_at: Optional[datetime] = Field(default=None)
    sent_message_id: Optional[str] = Field(default=None)

    summary: Optional[str] = Field(default=None)
    transcript: Optional[str] = Field(default=None)
    ended_reason: Optional[str] = Field(default=None)
    recording_url: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    call_start: Optional[datetime] = Field(default=None)
    call_end: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=utcnow)


class Caller(SQLModel, table=True):
    __tablename__ = "callers"

    phone_number: str = Field(primary_key=True)
    name: Optional[str] = Field(default=None)
    age: Optional[int] = Field(default=None)
    city: Optional[str] = Field(default=None)

    food_preferences: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    activities_preferences: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    shopping_preferences: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    entertainment_preferences: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_called_at: Optional[datetime] = Field(default=None)

    def preferences(self, category: PreferenceCategory) -> List[str]:
        return list(getattr(self, category.field_name) or [])


class Review(SQLModel, table=True):
    __tablename__ = "reviews"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    place_id: str = Field(index=True)
    comment: str
    rating: int
    phone_number: Optional[str] = Field(default=None)
    call_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
