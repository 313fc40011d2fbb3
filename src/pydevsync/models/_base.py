"""Base model and enum for developer tools GraphQL records.

Every record model inherits from :class:`DevSyncBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase GraphQL keys map
  automatically to snake_case fields.
* ``populate_by_name`` so records dumped into the store (snake_case keys)
  validate back without a second alias table.

Tag enums inherit from :class:`DevSyncEnum` which resolves values
case-insensitively and falls back to an ``UNKNOWN`` member, when the enum
defines one, for tags the server sends that have no mapped member.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DevSyncEnum(enum.StrEnum):
    """Base for GraphQL tag enums (``__typename`` values, levels, host types)."""

    @classmethod
    def _missing_(cls, value: object) -> DevSyncEnum | None:
        if isinstance(value, str):
            folded = value.strip().lower()
            for member in cls:
                if member.value.lower() == folded:
                    return member
        unknown = cls.__members__.get("UNKNOWN")
        if unknown is not None:
            return unknown
        return None


class DevSyncBaseModel(BaseModel):
    """Base for GraphQL record models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
