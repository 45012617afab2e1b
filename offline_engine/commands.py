"""
Command channel between the host application and the engine.

Messages are a closed set of variants discriminated by "type". Unknown types
fail validation when the message is parsed.
"""
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class SkipWaiting(BaseModel):
    """Force immediate activation of the pending version"""
    type: Literal["SKIP_WAITING"] = "SKIP_WAITING"


class CacheScore(BaseModel):
    """Queue a score submission for later sync"""
    type: Literal["CACHE_SCORE"] = "CACHE_SCORE"
    payload: Dict[str, Any]


class CacheTimerEvent(BaseModel):
    """Queue a timer event for later sync"""
    type: Literal["CACHE_TIMER_EVENT"] = "CACHE_TIMER_EVENT"
    payload: Dict[str, Any]


class GetOfflineData(BaseModel):
    """Ask for every unsynced record; answered on the reply channel"""
    type: Literal["GET_OFFLINE_DATA"] = "GET_OFFLINE_DATA"


Command = Annotated[
    Union[SkipWaiting, CacheScore, CacheTimerEvent, GetOfflineData],
    Field(discriminator="type"),
]

_command_adapter = TypeAdapter(Command)


def parse_command(data: Any) -> Command:
    """
    Validate a raw message into a command.

    Raises:
        pydantic.ValidationError: For unknown types or malformed payloads
    """
    return _command_adapter.validate_python(data)
