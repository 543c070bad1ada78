"""
Input context models.

Encapsulates the data of one local HTTP request before it is turned into an
IncomingEvent.
"""

from typing import Dict, List

from pydantic import BaseModel, Field


class InputContext(BaseModel):
    """
    Request as seen by the local emulation.

    This model decouples the event builder from FastAPI's Request object.
    """

    function_name: str
    method: str
    path: str
    headers: Dict[str, str]
    multi_headers: Dict[str, List[str]] = Field(default_factory=dict)
    query_params: Dict[str, str] = Field(default_factory=dict)
    multi_query_params: Dict[str, List[str]] = Field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = Field(default_factory=dict)
    route_path: str = ""
