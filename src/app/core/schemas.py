"""Base model for request/response payloads.

The HTTP API speaks camelCase JSON (``meetingUrl``, ``botId``) while Python
code uses snake_case attributes. Models accept either spelling on input and
dump camelCase via :func:`to_json`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def to_json(value: Any) -> Any:
    """JSON-ready camelCase form of a model, or a list/dict of models."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    return value
