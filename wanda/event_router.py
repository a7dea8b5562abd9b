import logging
from typing import Dict, Optional

from wanda.call_service import CallService
from wanda.models import CallStatus, PreferenceCategory, utcnow
from wanda.profile_service import ProfileService
from wanda.tool_router import ToolRouter

logger = logging.getLogger(__name__)

# Structured analysis key -> profile preference category. camelCase is accepted
# as well since the extraction model does not always keep the schema's keys.
ANALYSIS_PREFERENCE_KEYS = {
    PreferenceCategory.FOOD: ("food_preferences", "foodPreferences"),
    PreferenceCategory.ACTIVITIES: ("activity_preferences", "activityPreferences", "activities_preferences"),
    PreferenceCategory.SHOPPING: ("shopping_preferences", "shoppingPreferences"),
    PreferenceCategory.ENTERTAINMENT: ("entertainment_preferences", "entertainmentPreferences"),
}


def structured_data(message: Dict) -> Optional[Dict]:
    for analysis in (message.get("analysis"), (message.get("call") or {}).get("analysis")):
        if isinstance(analysis, dict) and isinstance(analysis.get("structuredData"), dict):
            return analysis["structuredData"]
    return None


def extract_preferences(data: Dict) -> Dict[PreferenceCategory, list]:
    preferences = {}
    for category, keys in ANALYSIS_PREFERENCE_KEYS.items():
        for key in keys:
            values = data.get(key)
            if isinstance(values, list) and values:
                preferences[category] = values
                break
    return preferences


class EventRouter:
    """Classifies Vapi server messages and hands each to its handler."""

    def __init__(self, tools: ToolRouter, calls: CallService, profiles: ProfileService):
        self.tools = tools
        self.calls = calls
        self.profiles = profiles

    def handle(self, message: Dict) -> Dict:
        message_type = message.get("type")
        call_id = (message.get("call") or {}).get("id")
        logger.info(f"Received Vapi {message_type} event for call ID: {call_id}")

        if message_type == "tool-calls":
            return self.tools.handle(message)
        if message_type == "status-update":
            return self.handle_status_update(call_id, message)
        if message_type == "end-of-call-report":
            return self.handle_end_of_call_report(call_id, message)
        if message_type == "hang":
            logger.warning(f"Call {call_id} reported a hang")
            return {"result": "Hang event acknowledged"}

        logger.info(f"Unhandled message type: {message_type}")
        return {"result": "Event acknowledged"}

    def handle_status_update(self, call_id: str, message: Dict) -> Dict:
        status = message.get("status")
        if not status:
            logger.warning(f"status-update without a status for call {call_id}")
            return {"result": "Status update acknowledged"}
        if self.calls.update_status(call_id, status):
            return {"result": "Status update processed successfully"}
        return {"result": "Status update acknowledged"}

    def handle_end_of_call_report(self, call_id: str, message: Dict) -> Dict:
        logger.info(f"End of call report for call {call_id}, reason: {message.get('endedReason')}")

        fields = {
            "status": CallStatus.ENDED.value,
            "ended_reason": message.get("endedReason"),
            "summary": message.get("summary") or (message.get("analysis") or {}).get("summary"),
            "transcript": message.get("transcript"),
            "call_end": utcnow(),
        }
        recording_url = message.get("recordingUrl") or (message.get("artifact") or {}).get("recordingUrl")
        if recording_url:
            fields["recording_url"] = recording_url
        record = self.calls.upsert(call_id, **fields)

        data = structured_data(message)
        if not data:
            logger.info(f"No structured data available for call {call_id}")
            return {"result": "End of call report processed successfully"}

        phone_number = record.caller_phone_number or (message.get("customer") or {}).get("number")
        preferences = extract_preferences(data)
        if not phone_number or not preferences:
            logger.info(f"No new preferences found in structured data for call {call_id}")
            return {"result": "End of call report processed successfully"}

        try:
            updates = self.profiles.merge_call_preferences(phone_number, preferences)
            added = {update.category.value: update.added for update in updates if update.added}
            logger.info(f"Updated preferences from call {call_id}: {added or 'nothing new'}")
        except Exception as e:
            logger.error(f"Error updating preferences from call {call_id}: {e}", exc_info=True)

        return {"result": "End of call report processed successfully"}
