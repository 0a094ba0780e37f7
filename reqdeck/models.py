from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import uuid

# --- Core Request Models ---

class RequestMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    def next(self) -> "RequestMethod":
        """Cyclic: DELETE wraps back to GET."""
        methods = list(RequestMethod)
        return methods[(methods.index(self) + 1) % len(methods)]

    def prev(self) -> "RequestMethod":
        methods = list(RequestMethod)
        return methods[(methods.index(self) - 1) % len(methods)]


class BodyKind(str, Enum):
    NO_BODY = "no_body"
    JSON = "json"


class HeaderEntry(BaseModel):
    name: str
    value: str
    enabled: bool = True

    @field_validator("name", "value")
    @classmethod
    def _not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("header name and value are required")
        return v


class Request(BaseModel):
    kind: Literal["request"] = "request"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    method: RequestMethod = RequestMethod.GET
    name: str = "unnamed request"
    uri: str = ""
    headers: List[HeaderEntry] = []
    body: Optional[str] = None
    body_kind: BodyKind = BodyKind.NO_BODY

    @model_validator(mode="after")
    def _body_matches_kind(self) -> "Request":
        if self.body_kind == BodyKind.JSON and self.body is None:
            raise ValueError("a json request must carry a body")
        if self.body_kind == BodyKind.NO_BODY and self.body is not None:
            raise ValueError("a request without body kind cannot carry a body")
        return self

    def enabled_headers(self) -> List[Tuple[str, str]]:
        return [(h.name, h.value) for h in self.headers if h.enabled]


class Directory(BaseModel):
    kind: Literal["directory"] = "directory"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "unnamed directory"
    requests: List["RequestNode"] = []


RequestNode = Annotated[Union[Directory, Request], Field(discriminator="kind")]

# Resolve forward reference for recursion
Directory.model_rebuild()


class CollectionInfo(BaseModel):
    name: str
    description: str = ""


class Collection(BaseModel):
    info: CollectionInfo
    requests: List[RequestNode] = []
    # runtime only: where the collection is synced on disk
    path: Optional[Path] = Field(default=None, exclude=True)


# --- Response Models ---

class Response(BaseModel):
    model_config = ConfigDict(frozen=True)

    request_id: str
    body: Optional[str] = None
    pretty_body: Optional[str] = None
    headers: Tuple[Tuple[str, str], ...] = ()
    status: Optional[int] = None
    duration: float = 0.0  # seconds
    headers_size: int = 0
    body_size: int = 0
    total_size: int = 0
    is_error: bool = False
    cause: Optional[str] = None
