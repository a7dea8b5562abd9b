import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Type

from pydantic import BaseModel, ConfigDict

from wanda.call_service import CallService
from wanda.maps_service import GoogleMapsService
from wanda.models import CallRecord, Caller
from wanda.profile_service import ProfileService, phone_key
from wanda.review_service import ReviewService
from wanda.sms_service import SmsService

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    SEARCH_MAPS = "wandaSearchMaps"
    REVIEW_SEARCH_MAPS = "wandaReviewSearchMaps"
    SEND_DIRECTIONS = "wandaSendDirections"
    GET_PLACE_DETAILS = "wandaGetPlaceDetails"
    UPDATE_PROFILE = "wandaUpdateProfile"
    UPDATE_PREFERENCES = "wandaUpdatePreferences"
    GET_PROFILE = "wandaGetProfile"
    CREATE_REVIEW = "wandaCreateReview"
    SEARCH_REVIEWS = "wandaSearchReviews"


@dataclass
class ToolResult:
    """What the assistant says back to the caller. `error` marks a failed tool run."""
    message: str
    error: bool = False


class ToolFailure(Exception):
    """Raised inside a handler to end it with a spoken, recoverable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ToolArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


@dataclass
class ToolServices:
    profiles: ProfileService
    calls: CallService
    reviews: ReviewService
    maps: GoogleMapsService
    sms: SmsService
    preferences_url: Optional[str] = None


@dataclass
class ToolContext:
    call_id: str
    services: ToolServices

    def call_record(self) -> CallRecord:
        record = self.services.calls.get(self.call_id)
        if record is None:
            logger.error(f"Call record with ID {self.call_id} not found.")
            raise ToolFailure("Call record not found.")
        return record

    def caller_phone_number(self) -> str:
        phone_number = self.call_record().caller_phone_number
        if not phone_number:
            logger.error(f"Caller phone number not found in call record with ID {self.call_id}.")
            raise ToolFailure("Caller phone number not found.")
        return phone_number

    def caller_profile(self) -> Optional[Caller]:
        """Best-effort profile lookup for personalisation; never fails the tool."""
        try:
            record = self.services.calls.get(self.call_id)
            if record is None or not record.caller_phone_number:
                return None
            return self.services.profiles.get(phone_key(record.caller_phone_number))
        except Exception as e:
            logger.warning(f"Could not load caller profile for call {self.call_id}: {e}")
            return None


@dataclass(frozen=True)
class ToolHandler:
    arguments: Type[ToolArguments]
    run: Callable[[ToolContext, ToolArguments], ToolResult]
