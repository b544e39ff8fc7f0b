from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


class DocumentClientError(Exception):
    """A document-store request failed (transport error or an error response)."""

    def __init__(self, message: str, *, code: int | None = None, error_num: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.error_num = error_num


@dataclass
class Cursor:
    """Result of a by-example query: the total match count and the first batch."""

    count: int
    documents: list[dict[str, Any]] = field(default_factory=list)

    def first(self) -> dict[str, Any] | None:
        return self.documents[0] if self.documents else None


class DocumentClient(Protocol):
    """The slice of a document database the session store needs."""

    async def list_databases(self) -> list[str]: ...

    async def create_database(self, name: str) -> None: ...

    def use_database(self, name: str) -> None: ...

    async def list_collections(self) -> list[str]: ...

    async def create_collection(self, name: str) -> None: ...

    async def find_by_example(self, collection: str, example: dict[str, Any]) -> Cursor: ...

    async def remove_by_example(self, collection: str, example: dict[str, Any]) -> int: ...

    async def update(self, collection: str, key: str, document: dict[str, Any]) -> None: ...

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]: ...

    async def truncate(self, collection: str) -> None: ...

    async def close(self) -> None: ...
