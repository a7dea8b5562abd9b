import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from pydantic import ValidationError

from wanda.tools import places, profile, reviews
from wanda.tools.base import (
    ToolContext,
    ToolFailure,
    ToolHandler,
    ToolName,
    ToolResult,
    ToolServices,
)

logger = logging.getLogger(__name__)

HANDLERS: Dict[ToolName, ToolHandler] = {
    ToolName.SEARCH_MAPS: ToolHandler(places.SearchMapsArguments, places.search_maps),
    ToolName.REVIEW_SEARCH_MAPS: ToolHandler(places.SearchMapsArguments, places.review_search_maps),
    ToolName.SEND_DIRECTIONS: ToolHandler(places.PlaceArguments, places.send_directions),
    ToolName.GET_PLACE_DETAILS: ToolHandler(places.PlaceArguments, places.get_place_details),
    ToolName.UPDATE_PROFILE: ToolHandler(profile.UpdateProfileArguments, profile.update_profile),
    ToolName.UPDATE_PREFERENCES: ToolHandler(profile.UpdatePreferencesArguments, profile.update_preferences),
    ToolName.GET_PROFILE: ToolHandler(profile.GetProfileArguments, profile.get_profile),
    ToolName.CREATE_REVIEW: ToolHandler(reviews.CreateReviewArguments, reviews.create_review),
    ToolName.SEARCH_REVIEWS: ToolHandler(reviews.SearchReviewsArguments, reviews.search_reviews),
}

_unhandled = set(ToolName) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"Tools without a handler: {sorted(tool.value for tool in _unhandled)}")


@dataclass
class ToolCall:
    id: Optional[str]
    name: str
    arguments: Dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict) -> "ToolCall":
        function = payload.get("function") or {}
        arguments = function.get("arguments", payload.get("arguments")) or {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError:
                logger.warning(f"Tool call {payload.get('id')} has unparseable arguments: {arguments!r}")
                arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return cls(
            id=payload.get("id"),
            name=function.get("name") or payload.get("name") or "",
            arguments=arguments,
        )


class ToolRouter:
    """
    Executes the tool invocation carried by a Vapi `tool-calls` message.

    Only one invocation per event is supported: the first entry of the tool
    call list runs and any further entries are logged and skipped. The
    response always carries a spoken result, so a failing tool never ends
    the conversation.
    """

    def __init__(self, services: ToolServices):
        self.services = services

    def handle(self, message: Dict) -> Dict:
        call_id = (message.get("call") or {}).get("id")
        tool_calls = message.get("toolCallList") or message.get("toolCalls") or []

        if not tool_calls:
            logger.warning(f"tool-calls message without tool calls for call {call_id}")
            return {"results": []}
        if len(tool_calls) > 1:
            logger.warning(
                f"Received {len(tool_calls)} tool calls for call {call_id}; "
                "only the first is executed"
            )

        tool_call = ToolCall.from_payload(tool_calls[0])
        result = self.dispatch(call_id, tool_call)
        return {"results": [{"toolCallId": tool_call.id, "result": result.message}]}

    def dispatch(self, call_id: str, tool_call: ToolCall) -> ToolResult:
        logger.info(f"Tool '{tool_call.name}' called for call {call_id} with {tool_call.arguments}")

        try:
            tool = ToolName(tool_call.name)
        except ValueError:
            logger.warning(f"Unknown function: {tool_call.name}")
            return ToolResult(f"Unknown function: {tool_call.name}", error=True)

        handler = HANDLERS[tool]
        try:
            arguments = handler.arguments.model_validate(tool_call.arguments)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {tool.value}: {e}")
            return ToolResult(
                "Sorry, I didn't quite catch the details for that. Could you say it again?",
                error=True,
            )

        context = ToolContext(call_id=call_id, services=self.services)
        try:
            result = handler.run(context, arguments)
        except ToolFailure as e:
            logger.info(f"{tool.value} for call {call_id} needs the caller's help: {e.message}")
            return ToolResult(e.message, error=True)
        except Exception as e:
            logger.error(f"Error running {tool.value} for call {call_id}: {e}", exc_info=True)
            return ToolResult(
                "I'm sorry, something went wrong on my end. Please try again in a moment.",
                error=True,
            )

        logger.info(f"{tool.value} for call {call_id} finished (error={result.error})")
        return result
