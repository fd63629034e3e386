"""Request bodies and the response envelope of the HTTP API."""

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from duologue.state.schema import Attachment
from duologue.utils.exceptions import DuologueError


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartSessionRequest(RequestModel):
    topic: str = ""
    description: str = ""
    participant_config: Optional[Dict[str, Dict[str, Any]]] = None
    settings: Optional[Dict[str, Any]] = None
    chat_id: Optional[str] = None


class SendMessageRequest(RequestModel):
    content: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)


def success(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": data, "error": None},
    )


def failure(error: DuologueError) -> JSONResponse:
    return JSONResponse(
        status_code=error.http_status,
        content={"success": False, "data": None, "error": error.to_dict()},
    )
