from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator


class Query(BaseModel):
    """Structured search request produced by the query builder."""

    text: str
    platform: str | None = None
    commands: list[str] = Field(default_factory=list)

    @field_validator("commands", mode="before")
    @classmethod
    def _drop_blank_commands(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("platform", mode="before")
    @classmethod
    def _normalize_platform(cls, value: Any) -> str | None:
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip().lower()

    def search_text(self) -> str:
        if self.commands:
            return f"{self.text} {' '.join(self.commands)}"
        return self.text


class RawNode(BaseModel):
    """One sub-question descriptor in a decomposition response."""

    content: str
    children: list[RawNode] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _children_list(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict) and _has_content(item)]


RawNode.model_rebuild()


class Decomposition(BaseModel):
    nodes: list[RawNode] = Field(default_factory=list)

    @field_validator("nodes", mode="before")
    @classmethod
    def _nodes_list(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict) and _has_content(item)]


def _has_content(item: dict[str, Any]) -> bool:
    content = item.get("content")
    return isinstance(content, str) and bool(content.strip())


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Parse the first JSON object in `raw_text`, tolerating code fences."""
    text = (raw_text or "").strip()
    if not text:
        return {}
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, flags=re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return {}
        try:
            payload = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return {}
    return payload if isinstance(payload, dict) else {}


def parse_decomposition(raw_text: str) -> list[RawNode]:
    """Malformed or non-array output yields an empty decomposition."""
    payload = extract_json_object(raw_text)
    try:
        return Decomposition.model_validate(payload).nodes
    except ValidationError:
        return []
