"""
Duration and statistics helpers shared by the discovery pipeline.
"""
import re
from typing import Iterable, Optional

import numpy as np

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_iso_duration_seconds(duration_str: Optional[str]) -> int:
    """Parse ISO 8601 duration (PT1H2M3S) to seconds.

    Missing groups count as zero. Malformed or empty input returns 0.
    """
    match = _DURATION_RE.match(duration_str or "")
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def median(values: Iterable[float]) -> float:
    """Median of ``values``; 0 for an empty input."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))
