from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from ruby_environments.models import OptionalRubyDefinition
from ruby_environments.workspace_context import WorkspaceContext, WorkspaceFolder

logger: logging.Logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]


@dataclass(frozen=True)
class RubyChangeEvent:
    """Fired whenever a workspace finishes resolving its Ruby."""

    context: WorkspaceContext
    ruby: OptionalRubyDefinition

    @property
    def workspace(self) -> WorkspaceFolder | None:
        """The host folder, or None for the default context."""
        return self.context.workspace_folder


class Subscription(object):
    """Handle returned by EventEmitter.subscribe."""

    def __init__(self, emitter: "EventEmitter", listener: Callable) -> None:
        self._emitter = emitter
        self._listener = listener
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._emitter._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class EventEmitter(Generic[T]):
    """Synchronous one-to-many broadcast."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, listener: Listener[T]) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    __call__ = subscribe

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def fire(self, event: T) -> None:
        """Deliver *event* to every listener subscribed when the call started."""
        for subscription in list(self._subscriptions):
            try:
                subscription._listener(event)
            except Exception:
                logger.exception(f"Listener {subscription._listener!r} failed")

    def dispose(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.dispose()
