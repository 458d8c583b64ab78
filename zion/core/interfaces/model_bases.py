"""Nominal marker base classes for model standardization.

`DomainModel` marks pydantic-based configuration and domain models;
`InternalDTO` marks internal dataclass-based records.
"""

from __future__ import annotations

from pydantic import BaseModel


class DomainModel(BaseModel):
    """Nominal marker for Pydantic-based domain models."""

    def __repr__(self) -> str:
        """Provide a concise, one-line summary of the object."""
        class_name = self.__class__.__name__
        for attr in ("id", "name", "base_url"):
            if hasattr(self, attr):
                attr_value = getattr(self, attr)
                if attr_value:
                    return f'<{class_name} {attr}="{attr_value}">'
        return f"<{class_name}>"


class InternalDTO:
    """Nominal marker for internal dataclass DTOs."""
