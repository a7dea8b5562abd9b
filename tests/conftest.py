import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from wanda.call_service import CallService
from wanda.config import Settings
from wanda.database import create_db_and_tables
from wanda.event_router import EventRouter
from wanda.maps_service import GoogleMapsService, SearchOutcome
from wanda.profile_service import ProfileService
from wanda.review_service import ReviewService
from wanda.sms_service import SmsService
from wanda.tool_router import ToolRouter
from wanda.tools.base import ToolServices

CALLER_NUMBER = "+15551234567"
CALL_ID = "call-123"


@pytest.fixture
def engine():
    """A fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    return engine


@pytest.fixture
def profiles(engine):
    return ProfileService(engine)


@pytest.fixture
def calls(engine):
    return CallService(engine)


@pytest.fixture
def reviews(engine):
    return ReviewService(engine)


@pytest.fixture
def maps():
    """Google Maps stand-in; directions links are built for real."""
    maps = MagicMock(spec=GoogleMapsService)
    maps.directions_link.side_effect = GoogleMapsService.directions_link
    maps.search.return_value = SearchOutcome(success=True, results=[])
    return maps


@pytest.fixture
def sms():
    sms = MagicMock(spec=SmsService)
    sms.send.return_value = "SM0123456789"
    return sms


@pytest.fixture
def services(profiles, calls, reviews, maps, sms):
    return ToolServices(profiles=profiles, calls=calls, reviews=reviews, maps=maps, sms=sms)


@pytest.fixture
def tool_router(services):
    return ToolRouter(services)


@pytest.fixture
def event_router(tool_router, calls, profiles):
    return EventRouter(tools=tool_router, calls=calls, profiles=profiles)


@pytest.fixture
def active_call(calls):
    """An open call session for CALLER_NUMBER."""
    return calls.upsert(CALL_ID, caller_phone_number=CALLER_NUMBER, status="in-progress")


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        GOOGLE_MAPS_API_KEY="maps-key",
        TWILIO_ACCOUNT_SID="AC00000000000000000000000000000000",
        TWILIO_AUTH_TOKEN="twilio-token",
        TWILIO_PHONE_NUMBER="+15550000000",
        VAPI_API_KEY="vapi-key",
        VAPI_PHONE_NUMBER_ID="vapi-phone-id",
        PUBLIC_BASE_URL=None,
        SIP_BRIDGE_ENABLED=False,
    )


def tool_call_message(name, arguments=None, call_id=CALL_ID, tool_call_id="tool-call-1", as_string=False):
    """A Vapi `tool-calls` message carrying a single invocation."""
    arguments = arguments or {}
    return {
        "type": "tool-calls",
        "call": {"id": call_id},
        "customer": {"number": CALLER_NUMBER},
        "toolCallList": [
            {
                "id": tool_call_id,
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": json.dumps(arguments) if as_string else arguments,
                },
            }
        ],
    }


@pytest.fixture
def run_tool(tool_router):
    """Dispatches one tool call and returns the spoken result text."""

    def _run(name, arguments=None, **kwargs):
        response = tool_router.handle(tool_call_message(name, arguments, **kwargs))
        assert len(response["results"]) == 1
        return response["results"][0]["result"]

    return _run
