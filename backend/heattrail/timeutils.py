"""Epoch-millisecond helpers."""

import time
from datetime import UTC, datetime


def epoch_ms_now() -> int:
    """Current wall-clock time in Unix epoch milliseconds."""
    return int(time.time() * 1000)


def dt_from_epoch_ms(epoch_ms: int) -> datetime:
    """Convert epoch milliseconds to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=UTC)
