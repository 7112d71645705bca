"""
In-process hook container.

Handlers run in registration order. A handler returning False stops the
chain and cancels the action; None or True let it continue.
"""
import logging
from collections import defaultdict
from typing import Callable, Dict, List

from .entities import UserIdentity

logger = logging.getLogger(__name__)

USER_CLEAR_NEW_TALK_NOTIFICATION = "UserClearNewTalkNotification"


class HookContainer:
    """Registry of named hook handlers."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., object]]] = defaultdict(list)

    def register(self, name: str, handler: Callable[..., object]) -> None:
        self._handlers[name].append(handler)

    def is_registered(self, name: str) -> bool:
        return bool(self._handlers.get(name))

    def run(self, name: str, *args) -> bool:
        """
        Run all handlers for a hook.

        Args:
            name: Hook name
            *args: Arguments passed to every handler

        Returns:
            False if a handler cancelled the action, True otherwise
        """
        for handler in list(self._handlers.get(name, ())):
            if handler(*args) is False:
                logger.debug(f"Hook {name} cancelled by {getattr(handler, '__name__', handler)!r}")
                return False
        return True


class HookRunner:
    """Typed entry points for the hooks the watchlist manager fires."""

    def __init__(self, container: HookContainer):
        self.container = container

    def on_user_clear_new_talk_notification(self, user: UserIdentity, old_rev_id: int) -> bool:
        return self.container.run(USER_CLEAR_NEW_TALK_NOTIFICATION, user, old_rev_id)
