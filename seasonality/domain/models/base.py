"""Shared pydantic configuration for wire-facing models.

Python attributes are snake_case; JSON uses camelCase aliases.  Requests
reject unknown fields so a typo in a filter key fails loudly.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class RequestModel(WireModel):
    model_config = ConfigDict(extra="forbid")
