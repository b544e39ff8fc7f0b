import asyncio
import json
import os
import time
from datetime import UTC, datetime, timedelta

from fastmcp import FastMCP
from fastmcp.server.context import Context
from starlette.requests import Request
from starlette.responses import JSONResponse

from log_config import configure_logging
from session_store import Session
from store_settings import StoreSettings
from stores.arango_store import ArangoSessionStore
from stores.memory_client import InMemoryDocumentClient

INSTANCE_ID = os.environ.get("INSTANCE_ID", "unknown")
ARANGO_URL = os.environ.get("ARANGO_SESSION_URL", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
SESSION_TTL = timedelta(minutes=30)
HEALTH_TIMEOUT = 2.0
START_TIME = time.monotonic()


def build_store() -> ArangoSessionStore:
    """ArangoDB when ARANGO_SESSION_URL is set (credentials etc. from ARANGO_SESSION_*), else in-memory."""
    if ARANGO_URL:
        return ArangoSessionStore(StoreSettings(expires=SESSION_TTL))
    settings = StoreSettings(db_name="mcp_sessions", expires=SESSION_TTL)
    return ArangoSessionStore(settings, client=InMemoryDocumentClient())


store = build_store()

mcp = FastMCP(
    name="arango_session_demo",
    instructions=f"Stateful MCP server instance: {INSTANCE_ID}",
)


def get_session(ctx: Context) -> Session:
    return Session(store, ctx.session_id)


@mcp.tool
async def increment_counter(ctx: Context) -> dict:
    """Increment the session-scoped counter and return its value."""
    s = get_session(ctx)
    val = (await s.get("counter") or 0) + 1
    await s.set("counter", val)
    return {"counter": val, "instance": INSTANCE_ID}


@mcp.tool
async def get_counter(ctx: Context) -> dict:
    """Get the current value of the session-scoped counter."""
    s = get_session(ctx)
    val = await s.get("counter")
    return {"counter": val if val else 0, "instance": INSTANCE_ID}


@mcp.tool
async def add_note(note: str, ctx: Context) -> dict:
    """Add a note to the session-scoped note list.

    Args:
        note: The note text to add.
    """
    s = get_session(ctx)
    notes = await s.get("notes") or []
    notes.append(note)
    await s.set("notes", notes)
    return {"notes_count": len(notes), "instance": INSTANCE_ID}


@mcp.tool
async def list_notes(ctx: Context) -> dict:
    """List all notes in the session-scoped note list."""
    s = get_session(ctx)
    notes = await s.get("notes") or []
    return {"notes": notes, "instance": INSTANCE_ID}


@mcp.tool
async def resume_session(old_session_id: str, ctx: Context) -> dict:
    """Copy the stored record of a previous session into the current session.

    Args:
        old_session_id: The mcp-session-id from the previous session.
    """
    new_sid = ctx.session_id
    if old_session_id == new_sid:
        return {"status": "same_session", "instance": INSTANCE_ID}

    s = get_session(ctx)
    copied = await s.copy_from(old_session_id)
    if not copied:
        return {"status": "not_found", "instance": INSTANCE_ID}
    return {"status": "resumed", "keys_copied": copied, "instance": INSTANCE_ID}


@mcp.tool
async def end_session(ctx: Context) -> dict:
    """Delete everything stored for the current session."""
    await get_session(ctx).destroy()
    return {"status": "destroyed", "instance": INSTANCE_ID}


@mcp.tool
async def get_status() -> dict:
    """Get server status: store readiness and uptime."""
    uptime = time.monotonic() - START_TIME
    return {
        "instance": INSTANCE_ID,
        "store_ready": store.ready,
        "collection": store.settings.collection,
        "uptime_seconds": round(uptime, 1),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@mcp.resource("resource://session/{session_id}/summary")
async def session_summary(session_id: str) -> str:
    """Summary of all state for a given session."""
    data = await Session(store, session_id).load()
    summary = {
        "session_id": session_id,
        "counter": data.get("counter") or 0,
        "notes": data.get("notes") or [],
        "instance": INSTANCE_ID,
    }
    return json.dumps(summary, indent=2)


@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    try:
        await asyncio.wait_for(store.wait_ready(), timeout=HEALTH_TIMEOUT)
    except TimeoutError:
        return JSONResponse(
            {"status": "degraded", "instance": INSTANCE_ID, "store": "connecting"},
            status_code=503,
        )
    return JSONResponse({"status": "ok", "instance": INSTANCE_ID})


if __name__ == "__main__":
    configure_logging(LOG_LEVEL, "arango-session-demo")
    mcp.run()
