from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from log_config import short_id
from readiness import ReadinessSignal, deferred_until_ready
from session_codec import decode_session, encode_session, is_expired
from session_store import (
    DuplicateSessionError,
    SessionStore,
    SessionStoreError,
    StoreCallback,
    StoreOperationError,
    invoke,
)
from store_settings import StoreSettings
from stores.arango_client import ArangoHttpClient
from stores.document_client import DocumentClient, DocumentClientError

logger = logging.getLogger(__name__)


class ArangoSessionStore(SessionStore):
    """Session store backed by an ArangoDB collection.

    The database and collection are created on first connect if they are
    missing. Operations issued before that finishes wait for it, then run.
    If the server cannot be reached the store never becomes ready and
    waiting operations stay parked; bound them with ``asyncio.wait_for``.
    """

    def __init__(
        self,
        options: StoreSettings | dict[str, Any],
        on_ready: Callable[[], Any] | None = None,
        *,
        client: DocumentClient | None = None,
    ) -> None:
        super().__init__()
        if isinstance(options, StoreSettings):
            self.settings = options
        else:
            self.settings = StoreSettings.from_options(options)

        self._client: DocumentClient = client or ArangoHttpClient(
            self.settings.url,
            credentials=self.settings.credentials,
            **self.settings.connection_options,
        )
        self._readiness = ReadinessSignal()
        self._on_ready = on_ready
        self._bootstrap_task: asyncio.Task[None] | None = None
        self._start_bootstrap()

    async def __aenter__(self) -> ArangoSessionStore:
        self._start_bootstrap()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def ready(self) -> bool:
        return self._readiness.is_set

    async def wait_ready(self) -> None:
        self._start_bootstrap()
        await self._readiness.wait()

    async def close(self) -> None:
        if self._bootstrap_task is not None and not self._bootstrap_task.done():
            self._bootstrap_task.cancel()
        await self._client.close()

    def _start_bootstrap(self) -> None:
        if self._bootstrap_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop yet; the first operation starts it
            return
        self._bootstrap_task = loop.create_task(self._bootstrap())

    async def _bootstrap(self) -> None:
        try:
            await self._provision()
        except Exception as e:
            logger.warning(
                "Failed to talk to ArangoDB, maybe the service isn't running?",
                extra={"url": self.settings.url, "error": str(e) or repr(e)},
            )
            return

        self._readiness.fire()
        logger.info(
            "Session store ready",
            extra={"db_name": self.settings.db_name, "collection": self.settings.collection},
        )
        if self._on_ready is not None:
            try:
                await invoke(self._on_ready)
            except Exception:
                logger.exception("on_ready callback failed")

    async def _provision(self) -> None:
        db_name = self.settings.db_name
        collection = self.settings.collection

        if db_name not in await self._client.list_databases():
            await self._client.create_database(db_name)
            logger.info("Created database", extra={"db_name": db_name})
        self._client.use_database(db_name)

        if collection not in await self._client.list_collections():
            await self._client.create_collection(collection)
            logger.info("Created collection", extra={"collection": collection})

    def _query(self, session_id: str) -> dict[str, Any]:
        return {self.settings.id_field: session_id}

    async def _fail(
        self,
        error: SessionStoreError,
        callback: StoreCallback | None,
        session_id: str | None = None,
    ) -> None:
        extra = {"session_id": short_id(session_id)} if session_id else {}
        logger.error(str(error), extra=extra)
        await self._errors.handle(error, callback)

    @deferred_until_ready
    async def get(self, session_id: str, callback: StoreCallback | None = None) -> dict[str, Any] | None:
        collection = self.settings.collection
        try:
            cursor = await self._client.find_by_example(collection, self._query(session_id))
        except DocumentClientError as e:
            err = StoreOperationError(f"Error finding {session_id}: {e}")
            return await self._fail(err, callback, session_id)

        if cursor.count > 1:
            err = DuplicateSessionError(f"get matched {cursor.count} documents for one session id")
            return await self._fail(err, callback, session_id)

        document = cursor.first()
        if document is None:
            logger.debug("Session not found", extra={"session_id": short_id(session_id)})
            return await self._respond(callback, None)

        if is_expired(document):
            logger.debug("Session expired", extra={"session_id": short_id(session_id)})
            return await self.destroy(session_id, callback)

        logger.debug("Session loaded", extra={"session_id": short_id(session_id)})
        return await self._respond(callback, decode_session(document))

    @deferred_until_ready
    async def set(
        self,
        session_id: str,
        session: dict[str, Any],
        callback: StoreCallback | None = None,
    ) -> None:
        collection = self.settings.collection
        document = self._query(session_id)
        try:
            document.update(encode_session(session, default_ttl=self.settings.expires))
        except (ValueError, OverflowError, OSError) as e:
            err = StoreOperationError(f"Error saving {session_id}: {e}")
            return await self._fail(err, callback, session_id)

        # upsert: query, then insert or update; concurrent sets for one id can race here
        try:
            cursor = await self._client.find_by_example(collection, self._query(session_id))
        except DocumentClientError as e:
            err = StoreOperationError(f"Error saving {session_id}: {e}")
            return await self._fail(err, callback, session_id)

        if cursor.count > 1:
            err = DuplicateSessionError(f"set matched {cursor.count} documents for one session id")
            return await self._fail(err, callback, session_id)

        existing = cursor.first()
        try:
            if existing is None:
                await self._client.insert(collection, document)
            else:
                document["_key"] = existing["_key"]
                await self._client.update(collection, existing["_key"], document)
        except DocumentClientError as e:
            err = StoreOperationError(f"Error saving {session_id}: {e}")
            return await self._fail(err, callback, session_id)

        logger.debug(
            "Session saved",
            extra={"session_id": short_id(session_id), "expires": document["expires"]},
        )
        return await self._respond(callback, None)

    @deferred_until_ready
    async def destroy(self, session_id: str, callback: StoreCallback | None = None) -> None:
        try:
            removed = await self._client.remove_by_example(self.settings.collection, self._query(session_id))
        except DocumentClientError as e:
            err = StoreOperationError(f"Error destroying {session_id}: {e}")
            return await self._fail(err, callback, session_id)

        logger.debug("Session destroyed", extra={"session_id": short_id(session_id), "removed": removed})
        return await self._respond(callback, None)

    @deferred_until_ready
    async def clear(self, callback: StoreCallback | None = None) -> None:
        try:
            await self._client.truncate(self.settings.collection)
        except DocumentClientError as e:
            err = StoreOperationError(f"Error clearing all sessions: {e}")
            return await self._fail(err, callback)

        logger.info("Cleared all sessions", extra={"collection": self.settings.collection})
        return await self._respond(callback, None)
