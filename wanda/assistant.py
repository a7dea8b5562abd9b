import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from wanda.call_service import CallService
from wanda.config import Settings
from wanda.models import CallStatus, utcnow
from wanda.profile_service import ProfileService
from wanda.squad.builder import build_squad, build_variable_values

logger = logging.getLogger(__name__)

VAPI_TIMEOUT = 15


class InboundCallError(Exception):
    """Inbound call setup failed; `status_code` is what the webhook answers with."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class InboundCallSetup:
    squad: Dict
    new_caller: bool
    # Only set when the call was bridged through Vapi's SIP endpoint.
    twiml: Optional[str] = None


class WandaAssistant:
    def __init__(
        self,
        settings: Settings,
        profiles: ProfileService,
        calls: CallService,
        http: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.profiles = profiles
        self.calls = calls
        self.http = http or requests.Session()
        self.vapi_base_url = settings.VAPI_BASE_URL.rstrip("/")

        # Headers for API requests
        self.vapi_headers = {
            "Authorization": f"Bearer {settings.VAPI_API_KEY}",
            "Content-Type": "application/json",
        }

    def server_url(self, host: Optional[str]) -> str:
        """Public base URL the squad's tools call back into."""
        if self.settings.PUBLIC_BASE_URL:
            return self.settings.PUBLIC_BASE_URL.rstrip("/")
        if self.settings.LOCAL:
            logger.warning("LOCAL is set but PUBLIC_BASE_URL is empty; falling back to the request host")
        return f"https://{host}"

    def start_inbound_call(self, call_id: Optional[str], caller_number: Optional[str], host: Optional[str]) -> InboundCallSetup:
        """
        Prepares a new inbound call: loads or creates the caller profile,
        opens the call session and assembles the squad personalised with the
        caller's profile. In SIP-bridge mode the call is also created on Vapi
        and the TwiML that connects it is returned.
        """
        missing = self.settings.missing_required()
        if missing:
            logger.error(f"Missing required configuration: {', '.join(missing)}")
            raise InboundCallError(500, f"Missing required configuration: {', '.join(missing)}")
        if not call_id or not caller_number:
            logger.error(f"Inbound call without call id or caller number (call_id={call_id}, from={caller_number})")
            raise InboundCallError(400, "Missing call id or caller number")

        logger.info(f"Inbound call {call_id} from {caller_number}")
        profile = self.profiles.get_or_create(caller_number, from_call=True)
        self._open_session(call_id, caller_number)
        new_caller = not self.calls.has_completed_call(caller_number, exclude_call_id=call_id)

        server_url = self.server_url(host)
        squad = build_squad(
            model=self.settings.MODEL,
            provider=self.settings.MODEL_PROVIDER,
            variable_values=build_variable_values(profile, new_caller),
            server_url=server_url,
        )

        if not self.settings.SIP_BRIDGE_ENABLED:
            return InboundCallSetup(squad=squad, new_caller=new_caller)

        call_data = self._create_bridged_call(caller_number, squad)
        vapi_call_id = call_data.get("id")
        if vapi_call_id and vapi_call_id != call_id:
            # Events arrive under Vapi's own call id; give that id a session too.
            self._open_session(vapi_call_id, caller_number)
        twiml = (call_data.get("phoneCallProviderDetails") or {}).get("twiml")
        if not twiml:
            logger.error(f"Vapi call for {call_id} came back without TwiML: {call_data}")
            raise InboundCallError(500, "Failed to create Vapi call")
        return InboundCallSetup(squad=squad, new_caller=new_caller, twiml=twiml)

    def _open_session(self, call_id: str, caller_number: str):
        self.calls.upsert(
            call_id,
            caller_phone_number=caller_number,
            status=CallStatus.RINGING.value,
            call_start=utcnow(),
        )

    def _create_bridged_call(self, caller_number: str, squad: Dict) -> Dict:
        payload = {
            "phoneNumberId": self.settings.VAPI_PHONE_NUMBER_ID,
            "phoneCallProviderBypassEnabled": True,
            "customer": {"number": caller_number},
            "squad": squad,
        }
        try:
            response = self.http.post(
                f"{self.vapi_base_url}/call",
                headers=self.vapi_headers,
                json=payload,
                timeout=VAPI_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Error creating Vapi call: {e}")
            raise InboundCallError(500, "Failed to create Vapi call")

        logger.info(f"Received response from Vapi API, status: {response.status_code}")
        if response.status_code not in (200, 201):
            logger.error(f"Failed to create Vapi call: {response.text}")
            raise InboundCallError(500, "Failed to create Vapi call")
        return response.json()
