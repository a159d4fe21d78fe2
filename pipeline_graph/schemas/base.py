"""Base Pydantic schemas with common patterns.

This module defines the base schema and reusable field definitions used
by the graph, validation and export schemas.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


class BaseSchema(BaseModel):
    """Base schema with common configuration for all schemas.

    Field names are snake_case in Python and camelCase on the wire, which
    is the shape the browser canvas produces (``stepType``, ``nodeId``).
    Either spelling is accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict:
        """Dump to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# Common field definitions for reuse
ConfigField: FieldInfo = cast(
    "FieldInfo",
    Field(
        default_factory=dict,
        description="Step configuration object (JSON)",
        examples=[{"repository": "org/repo", "branch": "main"}],
    ),
)

NameField: FieldInfo = cast(
    "FieldInfo",
    Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name",
        examples=["Release Pipeline"],
    ),
)


__all__ = [
    "BaseSchema",
    "ConfigField",
    "NameField",
]
