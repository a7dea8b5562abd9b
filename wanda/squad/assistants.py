from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from wanda.squad import prompts
from wanda.squad.transfers import PROFILE_TRANSFER, REVIEW_TRANSFER, SEARCH_TRANSFER, Transfer
from wanda.tools.base import ToolName

MODEL_GENERATED_FIRST_MESSAGE = "assistant-speaks-first-with-model-generated-message"


@dataclass(frozen=True)
class AssistantDefinition:
    name: str
    prompt: str
    temperature: float
    tools: Tuple[ToolName, ...] = ()
    transfers: Tuple[Transfer, ...] = ()
    end_call: bool = True
    first_message: Optional[str] = None
    first_message_mode: Optional[str] = None


INTRO = AssistantDefinition(
    name="Wanda_Intro",
    prompt=prompts.INTRO_PROMPT,
    temperature=0,
    transfers=(SEARCH_TRANSFER, PROFILE_TRANSFER, REVIEW_TRANSFER),
    end_call=False,
    first_message="Hello, this is Wanda. How can I help you today?",
)

SEARCH = AssistantDefinition(
    name="Wanda_Search",
    prompt=prompts.SEARCH_PROMPT,
    temperature=0.1,
    tools=(ToolName.SEARCH_MAPS, ToolName.SEND_DIRECTIONS, ToolName.GET_PLACE_DETAILS),
    transfers=(PROFILE_TRANSFER, REVIEW_TRANSFER),
    first_message_mode=MODEL_GENERATED_FIRST_MESSAGE,
)

PROFILE = AssistantDefinition(
    name="Wanda_Profile",
    prompt=prompts.PROFILE_PROMPT,
    temperature=0.1,
    tools=(ToolName.GET_PROFILE, ToolName.UPDATE_PROFILE, ToolName.UPDATE_PREFERENCES),
    transfers=(SEARCH_TRANSFER,),
    first_message_mode=MODEL_GENERATED_FIRST_MESSAGE,
)

REVIEW = AssistantDefinition(
    name="Wanda_Review",
    prompt=prompts.REVIEW_PROMPT,
    temperature=0.1,
    tools=(ToolName.REVIEW_SEARCH_MAPS, ToolName.CREATE_REVIEW, ToolName.SEARCH_REVIEWS),
    transfers=(SEARCH_TRANSFER,),
    first_message_mode=MODEL_GENERATED_FIRST_MESSAGE,
)

# Squad member order; the first member answers the call.
SQUAD_ORDER: Tuple[AssistantDefinition, ...] = (INTRO, SEARCH, PROFILE, REVIEW)

TRANSFER_GRAPH: Dict[str, Tuple[str, ...]] = {
    assistant.name: tuple(transfer.destination for transfer in assistant.transfers)
    for assistant in SQUAD_ORDER
}
