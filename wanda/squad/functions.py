"""
Vapi tool definitions for the squad.

Every function tool posts back to this service's `/events` endpoint; the
schemas below describe the arguments the model may pass.
"""
from typing import Dict, Iterable, List

from wanda.squad.transfers import Transfer
from wanda.tools.base import ToolName

PLACE_REFERENCE_PROPERTIES = {
    "placeName": {
        "type": "string",
        "description": "The name of the place.",
    },
    "placeAddress": {
        "type": "string",
        "description": "The formatted address of the place.",
    },
    "placeId": {
        "type": "string",
        "description": "The Google Place ID (optional, for more accurate results).",
    },
    "placeNumber": {
        "type": "number",
        "description": (
            "The number of the place from the search results (1, 2, 3, etc.). Use this when "
            "the user refers to a place by number from recent search results."
        ),
    },
}

REVIEWED_PLACE_PROPERTIES = {
    "placeNumber": PLACE_REFERENCE_PROPERTIES["placeNumber"],
    "placeId": {
        "type": "string",
        "description": "The Google Place ID shown in the review search results.",
    },
    "placeName": {
        "type": "string",
        "description": "The name of the place from the review search results.",
    },
}

SEARCH_PROPERTIES = {
    "query": {
        "type": "string",
        "description": "The search query to find places on Google Maps.",
    },
    "location": {
        "type": "string",
        "description": "The location to search around, a city or neighbourhood name or 'latitude,longitude'.",
    },
    "radius": {
        "type": "number",
        "description": "The radius (in meters) around the location to search.",
    },
}

PREFERENCE_LIST = {
    "type": "array",
    "items": {"type": "string"},
}

FUNCTION_SCHEMAS: Dict[ToolName, Dict] = {
    ToolName.SEARCH_MAPS: {
        "description": "Search Google Maps for places matching the caller's request.",
        "parameters": {"type": "object", "properties": SEARCH_PROPERTIES, "required": ["query"]},
    },
    ToolName.REVIEW_SEARCH_MAPS: {
        "description": (
            "Search Google Maps to identify the place the caller wants to review. "
            "Returns up to five places with their names and addresses."
        ),
        "parameters": {"type": "object", "properties": SEARCH_PROPERTIES, "required": ["query"]},
    },
    ToolName.SEND_DIRECTIONS: {
        "description": "Send a Google Maps directions link via SMS to the caller.",
        "parameters": {"type": "object", "properties": PLACE_REFERENCE_PROPERTIES, "required": []},
    },
    ToolName.GET_PLACE_DETAILS: {
        "description": "Get the address, phone number, opening hours, rating and website of a place.",
        "parameters": {"type": "object", "properties": PLACE_REFERENCE_PROPERTIES, "required": []},
    },
    ToolName.UPDATE_PROFILE: {
        "description": "Update the caller's profile with their name, age, or city.",
        "parameters": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "The caller's name."},
                "age": {"type": "number", "description": "The caller's age."},
                "city": {"type": "string", "description": "The caller's home city."},
            },
            "required": [],
        },
    },
    ToolName.UPDATE_PREFERENCES: {
        "description": "Add, remove, or replace the caller's saved preferences in one category.",
        "parameters": {
            "type": "object",
            "properties": {
                "preferenceType": {
                    "type": "string",
                    "enum": ["food", "activities", "shopping", "entertainment"],
                    "description": "Which preference list to change.",
                },
                "action": {
                    "type": "string",
                    "enum": ["add", "remove", "replace"],
                    "description": "Whether to add to, remove from, or replace the list.",
                },
                "preferences": dict(
                    PREFERENCE_LIST,
                    description="The preferences to apply, e.g. 'Italian', 'Vegetarian', 'Hiking'.",
                ),
            },
            "required": ["preferenceType", "action", "preferences"],
        },
    },
    ToolName.GET_PROFILE: {
        "description": "Read back everything saved in the caller's profile.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    ToolName.CREATE_REVIEW: {
        "description": "Save the caller's review of a place.",
        "parameters": {
            "type": "object",
            "properties": dict(
                REVIEWED_PLACE_PROPERTIES,
                comment={"type": "string", "description": "The caller's review in their own words."},
                rating={"type": "number", "description": "A whole-star rating from 1 to 5."},
            ),
            "required": ["comment", "rating"],
        },
    },
    ToolName.SEARCH_REVIEWS: {
        "description": "Look up what other callers said about a place.",
        "parameters": {"type": "object", "properties": REVIEWED_PLACE_PROPERTIES, "required": []},
    },
}

# Spoken while the caller waits on the slower tools.
PROGRESS_MESSAGES: Dict[ToolName, List[Dict]] = {
    ToolName.SEARCH_MAPS: [
        {"type": "request-start", "content": "Give me a moment to search the map for you."},
        {
            "type": "request-failed",
            "content": "Hmm...I couldn't find any places matching your search. Would you like to try a different query?",
        },
    ],
    ToolName.SEND_DIRECTIONS: [
        {"type": "request-start", "content": "Let me send you the directions via text message."},
        {
            "type": "request-failed",
            "content": "I'm sorry, I couldn't send the directions right now. Please try again later.",
        },
    ],
}


def function_tool(name: ToolName, server_url: str) -> Dict:
    schema = FUNCTION_SCHEMAS[name]
    tool = {
        "type": "function",
        # Vapi only speaks a tool result when it waits for it.
        "async": False,
        "server": {
            "url": f"{server_url.rstrip('/')}/events",
            "headers": {"Content-Type": "application/json"},
        },
        "function": {
            "name": name.value,
            "description": schema["description"],
            "parameters": schema["parameters"],
        },
    }
    if name in PROGRESS_MESSAGES:
        tool["messages"] = PROGRESS_MESSAGES[name]
    return tool


def transfer_call_tool(transfers: Iterable[Transfer]) -> Dict:
    return {
        "type": "transferCall",
        "destinations": [transfer.as_destination() for transfer in transfers],
    }


def end_call_tool() -> Dict:
    return {
        "type": "endCall",
        "messages": [{"type": "request-start", "content": "Have a great day! Wanda, out."}],
    }
