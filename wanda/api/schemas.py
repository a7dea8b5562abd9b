from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class SquadResponse(BaseModel):
    squad: Dict[str, Any]


class ToolCallResult(BaseModel):
    toolCallId: Optional[str] = None
    result: str


class ToolCallsResponse(BaseModel):
    results: List[ToolCallResult]


class EventResponse(BaseModel):
    result: str


class ErrorResponse(BaseModel):
    error: str


class WelcomeResponse(BaseModel):
    status: str
