"""Posts Store - single-writer container for the client's ClientPostsState.

Invariants:
    - dispatch() is the only mutation path; it delegates to core/reconcile.py
    - Listeners are notified once per action that changed state, after the change
    - get_state()/select() hand out deep copies, never the live state
    - A failing listener is logged and does not stop the others or the dispatch

Design Decisions:
    - Synchronous dispatch: reconciliation is pure and fast, and every caller
      (commands, sync client) already runs on the event loop thread
"""

import copy
import logging
from typing import Callable, TypeVar

from app.core.posts_actions import Action
from app.core.posts_state import ClientPostsState
from app.core.reconcile import reconcile

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[ClientPostsState, Action], None]


class PostsStore:
    """Holds the one ClientPostsState of a client session."""

    def __init__(self, state: ClientPostsState | None = None):
        self._state = state or ClientPostsState()
        self._listeners: list[Listener] = []

    def dispatch(self, action: Action) -> bool:
        """Apply one action. Returns True when state changed."""
        changed = reconcile(self._state, action)
        if changed:
            self._notify(action)
        return changed

    def get_state(self) -> ClientPostsState:
        return copy.deepcopy(self._state)

    def select(self, selector: Callable[[ClientPostsState], T]) -> T:
        return copy.deepcopy(selector(self._state))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, action: Action) -> None:
        snapshot = copy.deepcopy(self._state)
        for listener in list(self._listeners):
            try:
                listener(snapshot, action)
            except Exception as exc:
                logger.error(
                    f"Store listener failed on {type(action).__name__}: {exc}",
                    exc_info=True,
                )
