from __future__ import annotations

import copy
import uuid
from typing import Any

from stores.document_client import Cursor, DocumentClientError


class InMemoryDocumentClient:
    """Dict-backed document database. For local dev/tests.

    ``reachable=False`` makes every call fail like an unreachable server.
    """

    def __init__(self, *, reachable: bool = True) -> None:
        # {database: {collection: {_key: document}}}
        self._data: dict[str, dict[str, dict[str, dict[str, Any]]]] = {"_system": {}}
        self._database = "_system"
        self.reachable = reachable

    def _check(self) -> None:
        if not self.reachable:
            raise DocumentClientError("connection refused")

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        try:
            return self._data[self._database][name]
        except KeyError:
            raise DocumentClientError(
                f"collection or view not found: {name}", code=404, error_num=1203
            ) from None

    @staticmethod
    def _matches(document: dict[str, Any], example: dict[str, Any]) -> bool:
        return all(k in document and document[k] == v for k, v in example.items())

    @property
    def database(self) -> str:
        return self._database

    async def list_databases(self) -> list[str]:
        self._check()
        return list(self._data)

    async def create_database(self, name: str) -> None:
        self._check()
        if name in self._data:
            raise DocumentClientError(f"duplicate database name: {name}", code=409, error_num=1207)
        self._data[name] = {}

    def use_database(self, name: str) -> None:
        self._database = name

    async def list_collections(self) -> list[str]:
        self._check()
        return list(self._data.get(self._database, {}))

    async def create_collection(self, name: str) -> None:
        self._check()
        collections = self._data.setdefault(self._database, {})
        if name in collections:
            raise DocumentClientError(f"duplicate name: {name}", code=409, error_num=1207)
        collections[name] = {}

    async def find_by_example(self, collection: str, example: dict[str, Any]) -> Cursor:
        self._check()
        found = [copy.deepcopy(d) for d in self._collection(collection).values() if self._matches(d, example)]
        return Cursor(count=len(found), documents=found)

    async def remove_by_example(self, collection: str, example: dict[str, Any]) -> int:
        self._check()
        docs = self._collection(collection)
        dead = [key for key, d in docs.items() if self._matches(d, example)]
        for key in dead:
            del docs[key]
        return len(dead)

    async def update(self, collection: str, key: str, document: dict[str, Any]) -> None:
        self._check()
        docs = self._collection(collection)
        if key not in docs:
            raise DocumentClientError("document not found", code=404, error_num=1202)
        docs[key].update(copy.deepcopy(document))
        docs[key]["_key"] = key

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        self._check()
        docs = self._collection(collection)
        stored = copy.deepcopy(document)
        key = stored.setdefault("_key", uuid.uuid4().hex)
        if key in docs:
            raise DocumentClientError("unique constraint violated", code=409, error_num=1210)
        stored["_id"] = f"{collection}/{key}"
        docs[key] = stored
        return {"_id": stored["_id"], "_key": key}

    async def truncate(self, collection: str) -> None:
        self._check()
        self._collection(collection).clear()

    async def close(self) -> None:
        pass
