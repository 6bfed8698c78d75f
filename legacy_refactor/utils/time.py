from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def run_id(now: Optional[datetime] = None) -> str:
    # Microseconds keep concurrent runs in the same output dir apart.
    moment = now or datetime.now(timezone.utc)
    return moment.strftime("%Y%m%d-%H%M%S-%f")
