"""Marker base classes shared by every model in the terminal.

`DomainModel` is the root of all Pydantic models: configuration sections,
domain value objects and HTTP request/response bodies. `InternalDTO` is
mixed into frozen dataclasses that never cross the HTTP boundary, such as
parsed invocations and clock ticks.
"""

from __future__ import annotations

from pydantic import BaseModel

# Field shown in the short repr, first match wins
_REPR_FIELDS = ("name", "key", "command", "tab_id")


class DomainModel(BaseModel):
    """Pydantic base for domain, configuration and API models."""

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        for field in _REPR_FIELDS:
            if field in type(self).model_fields:
                value = getattr(self, field)
                if value is not None:
                    return f'<{class_name} {field}="{value}">'
        return f"<{class_name}>"


class InternalDTO:
    """Marker for dataclass DTOs that stay inside the process."""
