"""Status tool for health reporting."""

from typing import Any

from src.engine import CompositionEngine, get_engine

from ..lib import get_server_version


def status(engine: CompositionEngine | None = None) -> dict[str, Any]:
    """Report version, catalog size and cache state.

    Status is "degraded" when the catalog is empty (run ``seed``).
    """
    engine = engine or get_engine()
    details = engine.status()
    healthy = details["active_definitions"] > 0
    result: dict[str, Any] = {
        "status": "healthy" if healthy else "degraded",
        "version": get_server_version(),
        "engine": details,
    }
    if not healthy:
        result["action_required"] = ["Seed the catalog: python . seed"]
    return result
