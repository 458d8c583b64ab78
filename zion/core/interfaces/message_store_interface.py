from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from zion.core.interfaces.model_bases import InternalDTO


@dataclass(frozen=True)
class StoredMessage(InternalDTO):
    role: str
    content: str
    timestamp: str
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


class IMessageStore(ABC):
    @abstractmethod
    async def save_message(self, role: str, content: str) -> None:
        pass

    @abstractmethod
    async def get_history(self, limit: int = 10) -> list[StoredMessage]:
        """Return up to ``limit`` messages, most recent first."""

    @abstractmethod
    async def search_messages(self, term: str) -> list[StoredMessage]:
        """Case-insensitive substring search, most recent first."""

    @abstractmethod
    async def clear_history(self) -> None:
        pass

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        pass

    async def close(self) -> None:  # noqa: B027
        """Release store resources."""
