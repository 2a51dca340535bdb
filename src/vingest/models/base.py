"""Shared base model definitions for vingest domain objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class VingestBaseModel(BaseModel):
    """Base model configured for vingest-wide defaults.

    Fields are snake_case in Python and camelCase on the wire and in stored documents.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_document(self) -> dict[str, object]:
        """Return the camelCase JSON-compatible representation used for storage and responses."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = ["VingestBaseModel"]
