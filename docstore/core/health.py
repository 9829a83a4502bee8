from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import text

from docstore import __version__
from docstore.core.settings import settings
from docstore.db.session import engine


async def _check_db() -> dict[str, str]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:  # pragma: no cover - exercised in runtime
        return {"status": "error", "error": exc.__class__.__name__}


def _check_local_root() -> dict[str, str]:
    """The default local location must be able to accept writes."""
    root = Path(settings.local_upload_dir)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return {"status": "error", "error": exc.__class__.__name__}
    if not os.access(root, os.W_OK):
        return {"status": "error", "error": "not writable"}
    return {"status": "ok"}


def _overall_status(checks: dict[str, dict[str, Any]]) -> tuple[str, bool]:
    ready = all(check.get("status") == "ok" for check in checks.values())
    return ("ok" if ready else "degraded", ready)


async def live_payload() -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def ready_payload() -> dict[str, Any]:
    checks = {
        "api": {"status": "ok", "version": __version__},
        "database": await _check_db(),
        "local_storage": _check_local_root(),
    }
    overall, ready = _overall_status(checks)
    return {
        "status": overall,
        "ready": ready,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
