from __future__ import annotations

import abc
import inspect
from collections.abc import Callable
from typing import Any


class SessionStoreError(Exception):
    """Base class for everything a session store reports."""


class StoreConfigError(SessionStoreError, ValueError):
    """Invalid construction arguments. Raised synchronously, never routed."""


class DuplicateSessionError(SessionStoreError):
    """More than one document matched a single session id."""


class StoreOperationError(SessionStoreError):
    """A document-store call failed; the message names the operation and id."""


StoreCallback = Callable[[SessionStoreError | None, Any], Any]
ErrorListener = Callable[[SessionStoreError], Any]


async def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async callable and return its (awaited) result."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ErrorChannel:
    """Observer list for store errors.

    Listeners added with ``once=True`` are dropped before they are called.
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[ErrorListener, bool]] = []

    def subscribe(self, listener: ErrorListener, *, once: bool = False) -> None:
        self._listeners.append((listener, once))

    def unsubscribe(self, listener: ErrorListener) -> None:
        for i, (registered, _) in enumerate(self._listeners):
            if registered == listener:
                del self._listeners[i]
                return

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, error: SessionStoreError) -> int:
        snapshot = list(self._listeners)
        self._listeners = [entry for entry in self._listeners if not entry[1]]
        for listener, _ in snapshot:
            await invoke(listener, error)
        return len(snapshot)

    async def handle(self, error: SessionStoreError, callback: StoreCallback | None = None) -> None:
        """Report ``error`` to listeners and ``callback``; raise it if nobody is listening.

        The callback still runs when a listener raises; the listener's exception then propagates.
        """
        notified = 0
        try:
            if self._listeners:
                notified = await self.emit(error)
        finally:
            if callback is not None:
                await invoke(callback, error, None)
        if not notified and callback is None:
            raise error


class SessionStore(abc.ABC):
    """Capability set a session host plugs in: get/set/destroy/clear plus error events.

    Every operation accepts an optional ``callback(error, value)``. Results are also
    returned, so plain ``await store.get(sid)`` works when no callback is wanted.
    """

    def __init__(self) -> None:
        self._errors = ErrorChannel()

    @abc.abstractmethod
    async def get(self, session_id: str, callback: StoreCallback | None = None) -> dict[str, Any] | None: ...

    @abc.abstractmethod
    async def set(self, session_id: str, session: dict[str, Any], callback: StoreCallback | None = None) -> None: ...

    @abc.abstractmethod
    async def destroy(self, session_id: str, callback: StoreCallback | None = None) -> None: ...

    @abc.abstractmethod
    async def clear(self, callback: StoreCallback | None = None) -> None: ...

    def on(self, event: str, listener: ErrorListener) -> None:
        self._channel(event).subscribe(listener)

    def once(self, event: str, listener: ErrorListener) -> None:
        self._channel(event).subscribe(listener, once=True)

    def off(self, event: str, listener: ErrorListener) -> None:
        self._channel(event).unsubscribe(listener)

    def _channel(self, event: str) -> ErrorChannel:
        if event != "error":
            raise ValueError(f"unsupported store event: {event!r}")
        return self._errors

    async def _respond(self, callback: StoreCallback | None, value: Any = None) -> Any:
        if callback is not None:
            await invoke(callback, None, value)
        return value


class Session:
    """Binds a store + session_id. Reads and writes whole session records.

    Tool authors only see ``session.get("counter")`` / ``session.set("notes", [...])``.
    """

    def __init__(self, store: SessionStore, session_id: str) -> None:
        self._store = store
        self._session_id = session_id

    @property
    def session_id(self) -> str:
        return self._session_id

    async def load(self) -> dict[str, Any]:
        data = await self._store.get(self._session_id)
        return dict(data) if data else {}

    async def get(self, key: str) -> Any:
        return (await self.load()).get(key)

    async def set(self, key: str, value: Any) -> None:
        data = await self.load()
        data[key] = value
        await self._store.set(self._session_id, data)

    async def destroy(self) -> None:
        await self._store.destroy(self._session_id)

    async def copy_from(self, old_session_id: str) -> int:
        data = await self._store.get(old_session_id)
        if not data:
            return 0
        await self._store.set(self._session_id, dict(data))
        return len(data)
