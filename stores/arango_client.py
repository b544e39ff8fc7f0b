from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from stores.document_client import Cursor, DocumentClientError

_SYSTEM_DB = "_system"

_FIND_QUERY = "FOR doc IN @@collection{filter} RETURN doc"
_REMOVE_QUERY = "FOR doc IN @@collection{filter} REMOVE doc IN @@collection"


def _by_example(example: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """AQL equality filter for an example, one bound attribute per key so indexes apply."""
    clauses = []
    bind_vars: dict[str, Any] = {}
    for i, (attr, value) in enumerate(example.items()):
        clauses.append(f"doc.@attr{i} == @value{i}")
        bind_vars[f"attr{i}"] = attr
        bind_vars[f"value{i}"] = value
    if not clauses:
        return "", bind_vars
    return " FILTER " + " AND ".join(clauses), bind_vars


class ArangoHttpClient:
    """ArangoDB document client over the HTTP API. The ONLY file that imports httpx."""

    def __init__(
        self,
        url: str,
        *,
        credentials: tuple[str, str] | None = None,
        **connection_options: Any,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=url, auth=credentials, **connection_options)
        self._database = _SYSTEM_DB

    @property
    def database(self) -> str:
        return self._database

    def use_database(self, name: str) -> None:
        self._database = name

    def _db_path(self, path: str) -> str:
        return f"/_db/{quote(self._database, safe='')}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            resp = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise DocumentClientError(f"{method} {path} failed: {e}") from e
        except (TypeError, ValueError) as e:
            # request body not JSON-encodable
            raise DocumentClientError(f"{method} {path} failed: {e}") from e

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}

        if resp.is_error:
            message = body.get("errorMessage") if isinstance(body, dict) else None
            error_num = body.get("errorNum") if isinstance(body, dict) else None
            raise DocumentClientError(message or resp.reason_phrase, code=resp.status_code, error_num=error_num)
        if not isinstance(body, dict):
            raise DocumentClientError(f"{method} {path}: unexpected response body", code=resp.status_code)
        return body

    async def list_databases(self) -> list[str]:
        body = await self._request("GET", "/_api/database/user")
        return list(body.get("result", []))

    async def create_database(self, name: str) -> None:
        await self._request("POST", "/_api/database", json={"name": name})

    async def list_collections(self) -> list[str]:
        body = await self._request(
            "GET", self._db_path("/_api/collection"), params={"excludeSystem": "true"}
        )
        try:
            return [c["name"] for c in body.get("result", [])]
        except (KeyError, TypeError) as e:
            raise DocumentClientError(f"unexpected collection listing: {e!r}") from e

    async def create_collection(self, name: str) -> None:
        await self._request("POST", self._db_path("/_api/collection"), json={"name": name})

    async def _query(self, query: str, bind_vars: dict[str, Any]) -> dict[str, Any]:
        body = await self._request(
            "POST",
            self._db_path("/_api/cursor"),
            json={"query": query, "bindVars": bind_vars, "count": True},
        )
        if body.get("hasMore") and body.get("id"):
            await self._request("DELETE", self._db_path(f"/_api/cursor/{body['id']}"))
        return body

    async def find_by_example(self, collection: str, example: dict[str, Any]) -> Cursor:
        where, bind_vars = _by_example(example)
        body = await self._query(_FIND_QUERY.format(filter=where), {"@collection": collection, **bind_vars})
        documents = body.get("result", [])
        return Cursor(count=body.get("count", len(documents)), documents=documents)

    async def remove_by_example(self, collection: str, example: dict[str, Any]) -> int:
        where, bind_vars = _by_example(example)
        body = await self._query(_REMOVE_QUERY.format(filter=where), {"@collection": collection, **bind_vars})
        return body.get("extra", {}).get("stats", {}).get("writesExecuted", 0)

    async def update(self, collection: str, key: str, document: dict[str, Any]) -> None:
        path = f"/_api/document/{quote(collection, safe='')}/{quote(key, safe='')}"
        await self._request("PATCH", self._db_path(path), json=document, params={"mergeObjects": "false"})

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", self._db_path(f"/_api/document/{quote(collection, safe='')}"), json=document
        )

    async def truncate(self, collection: str) -> None:
        await self._request("PUT", self._db_path(f"/_api/collection/{quote(collection, safe='')}/truncate"))

    async def close(self) -> None:
        await self._http.aclose()
