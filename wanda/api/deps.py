from wanda.assistant import WandaAssistant
from wanda.call_service import CallService
from wanda.config import settings
from wanda.database import engine
from wanda.event_router import EventRouter
from wanda.maps_service import GoogleMapsService
from wanda.profile_service import ProfileService
from wanda.review_service import ReviewService
from wanda.sms_service import SmsService
from wanda.tool_router import ToolRouter
from wanda.tools.base import ToolServices

profile_service = ProfileService(engine)
call_service = CallService(engine)

tool_services = ToolServices(
    profiles=profile_service,
    calls=call_service,
    reviews=ReviewService(engine),
    maps=GoogleMapsService(api_key=settings.GOOGLE_MAPS_API_KEY),
    sms=SmsService(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_PHONE_NUMBER,
    ),
    preferences_url=settings.PREFERENCES_URL,
)

wanda_assistant = WandaAssistant(settings=settings, profiles=profile_service, calls=call_service)
event_router = EventRouter(tools=ToolRouter(tool_services), calls=call_service, profiles=profile_service)


def get_wanda_assistant() -> WandaAssistant:
    """Dependency injector that provides a single instance of the WandaAssistant."""
    return wanda_assistant


def get_event_router() -> EventRouter:
    return event_router
