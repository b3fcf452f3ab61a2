# scormbridge/app/frames.py
from __future__ import annotations
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

import logging
logger = logging.getLogger(__name__)

__all__ = [
    "HelloFrame", "WelcomeFrame", "CallFrame", "CallbackFrame", "LogFrame",
    "ErrorFrame", "InboundFrame", "parseInboundFrame",
]



class _Frame(BaseModel):
    model_config = ConfigDict(extra="ignore")



class HelloFrame(_Frame):
    """Page -> server. Opens a bridge session."""
    type: Literal["hello"]



class WelcomeFrame(_Frame):
    """Server -> page. Tells the page where to SendMessage its replies."""
    type: Literal["welcome"] = "welcome"
    sessionId: str
    callbackObject: str
    callbackFunction: str



class CallFrame(_Frame):
    """Server -> page. One-way invocation of a host page function."""
    type: Literal["call"] = "call"
    fn: str
    args: list[Any] = Field(default_factory=list)



class CallbackFrame(_Frame):
    """Page -> server. SendMessage(object, function, value)."""
    type: Literal["callback"]
    object: str
    function: str
    value: str



class LogFrame(_Frame):
    """Page -> server. A line from the page's own log."""
    type: Literal["log"]
    text: str = ""



class ErrorFrame(_Frame):
    type: Literal["error"] = "error"
    code: str
    message: str



InboundFrame = Annotated[HelloFrame | CallbackFrame | LogFrame, Field(discriminator="type")]
_inboundAdapter: TypeAdapter[HelloFrame | CallbackFrame | LogFrame] = TypeAdapter(InboundFrame)



def parseInboundFrame(raw: str | bytes) -> HelloFrame | CallbackFrame | LogFrame | None:
    """Validates one text frame from the page. Invalid frames give None."""
    try:
        return _inboundAdapter.validate_json(raw)
    except ValidationError:
        logger.debug("Invalid frame from host page", exc_info=True)
        return None
