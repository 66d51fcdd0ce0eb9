# buildx_telemetry/core/buildx/models.py
"""
Record shapes of `docker buildx build --progress=rawjson` output.

Each line is one LogEntry. Unknown fields are ignored and null is
accepted wherever a field is optional.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Vertex(BaseModel):
    """A build-graph node update."""
    model_config = ConfigDict(extra="ignore")

    digest: Optional[str] = None
    name: str = ""
    started: Optional[str] = None
    completed: Optional[str] = None
    inputs: List[str] = Field(default_factory=list)
    cached: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def _name_not_null(cls, v):
        return "" if v is None else v

    @field_validator("inputs", mode="before")
    @classmethod
    def _inputs_not_null(cls, v):
        return [] if v is None else v

    @field_validator("cached", mode="before")
    @classmethod
    def _cached_not_null(cls, v):
        return False if v is None else v

    @property
    def is_complete(self) -> bool:
        return bool(self.started) and bool(self.completed)


class VertexStatus(BaseModel):
    """A progress tick for a vertex. Carried by the schema, unused by the parser."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    vertex: Optional[str] = None
    name: Optional[str] = None
    current: Optional[int] = None
    total: Optional[int] = None
    timestamp: Optional[str] = None
    started: Optional[str] = None
    completed: Optional[str] = None


class LogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    vertexes: List[Vertex] = Field(default_factory=list)
    statuses: List[VertexStatus] = Field(default_factory=list)

    @field_validator("vertexes", "statuses", mode="before")
    @classmethod
    def _list_not_null(cls, v):
        return [] if v is None else v
