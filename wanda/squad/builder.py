import logging
from typing import Dict, List, Optional

from wanda.models import Caller, PreferenceCategory
from wanda.squad.assistants import SQUAD_ORDER, AssistantDefinition
from wanda.squad.functions import end_call_tool, function_tool, transfer_call_tool

logger = logging.getLogger(__name__)

SERVER_MESSAGES = ["tool-calls", "status-update", "end-of-call-report", "hang"]

TRANSCRIBER = {
    "provider": "deepgram",
    "model": "nova-3-general",
    "language": "en",
    "smartFormat": True,
    "endpointing": 120,
}

VOICE = {
    "provider": "11labs",
    "voiceId": "cgSgspJ2msm6clMCkdW9",
    "model": "eleven_turbo_v2_5",
    "stability": 0.5,
    "style": 0,
    "speed": 0.96,
    "useSpeakerBoost": True,
    "optimizeStreamingLatency": 4,
}

PREFERENCE_VARIABLES = {
    PreferenceCategory.FOOD: "callerFoodPreferences",
    PreferenceCategory.ACTIVITIES: "callerActivityPreferences",
    PreferenceCategory.SHOPPING: "callerShoppingPreferences",
    PreferenceCategory.ENTERTAINMENT: "callerEntertainmentPreferences",
}


def _preference_schema(kind: str) -> Dict:
    return {
        "type": "array",
        "items": {"type": "string"},
        "description": f"Any {kind} preferences the caller mentioned during the call.",
    }


ANALYSIS_PLAN = {
    "structuredDataPlan": {
        "enabled": True,
        "schema": {
            "type": "object",
            "properties": {
                "food_preferences": _preference_schema("food or cuisine"),
                "activity_preferences": _preference_schema("activity"),
                "shopping_preferences": _preference_schema("shopping"),
                "entertainment_preferences": _preference_schema("entertainment"),
            },
        },
        "messages": [
            {
                "role": "system",
                "content": (
                    "Extract the caller's stated preferences from the call transcript. "
                    "Only include preferences the caller clearly expressed as their own. "
                    "Return empty arrays for categories that were not mentioned.\n\n"
                    "Json Schema:\n{{schema}}\n\nOnly respond with the JSON."
                ),
            },
            {
                "role": "user",
                "content": "Here is the transcript:\n\n{{transcript}}\n\n",
            },
        ],
    }
}


def build_variable_values(profile: Optional[Caller], new_caller: bool) -> Dict:
    """
    Per-call values Vapi substitutes into the `{{...}}` placeholders of
    every assistant prompt.
    """
    values = {
        "callerName": (profile.name if profile else None) or "",
        "callerAge": str(profile.age) if profile and profile.age else "",
        "callerCity": (profile.city if profile else None) or "",
        "newCaller": new_caller,
    }
    for category, variable in PREFERENCE_VARIABLES.items():
        preferences = profile.preferences(category) if profile else []
        values[variable] = ", ".join(preference.lower() for preference in preferences)
    return values


def build_member(
    assistant: AssistantDefinition,
    model: str,
    provider: str,
    variable_values: Dict,
    server_url: str,
) -> Dict:
    tools: List[Dict] = [function_tool(name, server_url) for name in assistant.tools]
    if assistant.transfers:
        tools.append(transfer_call_tool(assistant.transfers))
    if assistant.end_call:
        tools.append(end_call_tool())

    definition = {
        "name": assistant.name,
        "model": {
            "provider": provider,
            "model": model,
            "temperature": assistant.temperature,
            "messages": [{"role": "system", "content": assistant.prompt}],
            "tools": tools,
        },
    }
    if assistant.first_message is not None:
        definition["firstMessage"] = assistant.first_message
    if assistant.first_message_mode is not None:
        definition["firstMessageMode"] = assistant.first_message_mode

    return {
        "assistant": definition,
        "assistantOverrides": {"variableValues": dict(variable_values)},
    }


def build_squad(model: str, provider: str, variable_values: Dict, server_url: str) -> Dict:
    members = [
        build_member(assistant, model, provider, variable_values, server_url)
        for assistant in SQUAD_ORDER
    ]
    logger.info(
        f"Assembled squad of {len(members)} assistants ({', '.join(a.name for a in SQUAD_ORDER)}) "
        f"with tool server {server_url}"
    )
    return {
        "members": members,
        "membersOverrides": {
            "transcriber": TRANSCRIBER,
            "voice": VOICE,
            "serverMessages": SERVER_MESSAGES,
            "server": {"url": f"{server_url.rstrip('/')}/events"},
            "analysisPlan": ANALYSIS_PLAN,
        },
    }
