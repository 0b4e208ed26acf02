"""FastAPI application."""

from typing import Any

from fastapi import Body, FastAPI

from trials_intelligence import __version__
from trials_intelligence.config import get_settings
from trials_intelligence.tools import TOOLS, call_tool
from trials_intelligence.utils.cache import get_response_cache

app = FastAPI(
    title="Trials Intelligence API",
    description="Normalized ClinicalTrials.gov and PubMed tools",
    version=__version__,
    debug=get_settings().debug,
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/tools")
async def list_tools() -> list[dict[str, str]]:
    return [{"name": t.name, "description": t.description} for t in TOOLS.values()]


@app.post("/tools/{tool_name}")
async def invoke_tool(
    tool_name: str,
    arguments: dict[str, Any] | None = Body(default=None),
) -> dict[str, Any]:
    """Run a tool. Failures are reported in the envelope, always with HTTP 200."""
    return await call_tool(tool_name, arguments)


@app.get("/cache")
async def cache_stats() -> dict[str, Any]:
    return get_response_cache().stats().model_dump()
