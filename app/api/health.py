# app/api/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

APP_STARTED_AT = time.time()


def _now_meta() -> Dict[str, Any]:
    now_ts = time.time()
    now_dt = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    return {
        "now_unix": int(now_ts),
        "now_iso": now_dt.isoformat().replace("+00:00", "Z"),
        "uptime_s": int(now_ts - APP_STARTED_AT),
    }


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        return {"status": "starting", "cached_keys": 0, "in_flight": 0, **_now_meta()}

    return {
        "status": "ok",
        "cached_keys": len(coordinator.store),
        "in_flight": coordinator.in_flight_count,
        **_now_meta(),
    }
