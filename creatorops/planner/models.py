"""
Models for LLM-generated video scripts.

LLM output is untrusted: scalars are coerced to strings, non-list arrays
become empty lists, and anything structurally unusable raises
MalformedScriptError.
"""
import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class MalformedScriptError(ValueError):
    """The LLM payload could not be turned into a DetailedScript."""


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _as_text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [_as_text(v) for v in value if v is not None]


class TimelineSegment(BaseModel):
    """One shot-list row: start time, segment label, narration, visuals."""
    model_config = ConfigDict(populate_by_name=True)

    time: str = ""
    segment: str = ""
    voiceover: str = ""
    visuals: str = ""

    @field_validator("time", "segment", "voiceover", "visuals", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return _as_text(v)


class DetailedScript(BaseModel):
    """A shootable video script."""
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    title: str = ""
    thumbnail_copy: str = Field("", alias="thumbnailCopy")
    opening_15s: list[str] = Field(default_factory=list, alias="opening15s")
    timeline: list[TimelineSegment] = Field(default_factory=list)
    content_items: list[str] = Field(default_factory=list, alias="contentItems")
    cta: str = ""
    publish_copy: str = Field("", alias="publishCopy")
    tags: list[str] = Field(default_factory=list)
    differentiation: list[str] = Field(default_factory=list)
    provider: Literal["ai", "template"] = "ai"

    @field_validator("topic", "title", "thumbnail_copy", "cta", "publish_copy", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return _as_text(v)

    @field_validator("opening_15s", "content_items", "tags", "differentiation", mode="before")
    @classmethod
    def _coerce_list(cls, v):
        return _as_text_list(v)

    @field_validator("timeline", mode="before")
    @classmethod
    def _coerce_timeline(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, (dict, TimelineSegment))]

    @field_validator("provider", mode="before")
    @classmethod
    def _coerce_provider(cls, v):
        return "template" if v == "template" else "ai"


def parse_script_payload(payload: Union[str, bytes, dict]) -> DetailedScript:
    """Validate a raw LLM response into a DetailedScript.

    Accepts a JSON string or an already-decoded dict. Some models wrap the
    object as ``{"0": {...}}``; that envelope is unwrapped.

    Raises:
        MalformedScriptError: The payload is not a JSON object or fails validation.
    """
    data = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedScriptError(f"LLM returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedScriptError(f"Expected a JSON object, got {type(data).__name__}")

    inner = data.get("0")
    if isinstance(inner, dict):
        data = {**inner, "provider": data.get("provider", inner.get("provider"))}

    try:
        return DetailedScript.model_validate(data)
    except ValidationError as e:
        raise MalformedScriptError(str(e)) from e
