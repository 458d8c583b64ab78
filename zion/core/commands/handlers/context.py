from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from zion.core.common.exceptions import ConfigurationError

if TYPE_CHECKING:
    from zion.core.commands.dispatcher import Dispatcher
    from zion.core.interfaces.message_store_interface import IMessageStore
    from zion.core.services.api_manager import APIManager


@dataclass
class CommandContext:
    """Collaborators shared by the built-in command handlers.

    ``exit_requested`` is set by the exit command; the interactive loop
    stops once it sees it.
    """

    dispatcher: Dispatcher
    store: IMessageStore | None = None
    api_manager: APIManager | None = None
    history_limit: int = 10
    exit_requested: bool = False

    def require_store(self) -> IMessageStore:
        if self.store is None:
            raise ConfigurationError("No message store configured")
        return self.store

    def require_api_manager(self) -> APIManager:
        if self.api_manager is None:
            raise ConfigurationError("External APIs are not configured")
        return self.api_manager
