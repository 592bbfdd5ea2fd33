"""Identity values and a tiny publish/subscribe holder for auth transitions."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """An authenticated user as seen by the favorites subsystem."""

    auth_token: str
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        # A signed-in user whose token has not arrived yet is served from local
        # storage until the token shows up.
        return bool(self.auth_token)


IdentityListener = Callable[[Identity | None], Awaitable[None]]


class AuthState:
    """Holds the current identity and notifies subscribers on every change.

    ``None`` means the visitor is anonymous. Listeners are awaited in
    subscription order; a failing listener is logged and does not stop the
    others from being notified.
    """

    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def publish(self, identity: Identity | None) -> None:
        self._identity = identity
        for listener in list(self._listeners):
            try:
                await listener(identity)
            except Exception:  # noqa: BLE001
                logger.exception("Identity listener %r failed", listener)
