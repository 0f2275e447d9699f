"""Pick an output kind from a weighted ``Accept`` header."""

import logging
import math
from typing import Optional

from .errors import ConversionError, ErrorKind
from .formats import OutputKind

logger = logging.getLogger(__name__)

SUPPORTED_MEDIA_TYPES = {
    "application/mathml+xml": OutputKind.MATHML,
    "image/svg+xml": OutputKind.SVG,
    "image/png": OutputKind.PNG,
}


def negotiate(accept_header: Optional[str]) -> OutputKind:
    """
    Return the supported output kind the client prefers most.

    Entries are scanned once in header order. A candidate replaces the
    current best only if its priority is strictly higher, so ties keep the
    earlier entry and ``q=0`` is never accepted.

    Args:
        accept_header: Raw ``Accept`` header value (may be empty or None)

    Returns:
        The negotiated OutputKind

    Raises:
        ConversionError: NotAcceptable (406) if no supported type is offered
    """
    header = accept_header or ""
    best: Optional[OutputKind] = None
    best_priority = 0.0

    for entry in header.split(","):
        parts = entry.split(";")
        media_type = parts[0].strip().lower()
        if media_type not in SUPPORTED_MEDIA_TYPES:
            continue

        priority = _priority(parts[1:])
        if priority is None or priority <= best_priority:
            continue

        best = SUPPORTED_MEDIA_TYPES[media_type]
        best_priority = priority

    if best is None:
        raise ConversionError(ErrorKind.NOT_ACCEPTABLE, f"Not acceptable: {header}")

    logger.debug(f"Negotiated {best.value} (q={best_priority}) from Accept: {header}")
    return best


def _priority(params) -> Optional[float]:
    """Read the ``q`` parameter; None when it is present but not a number in [0, 1]."""
    for param in params:
        name, _, value = param.strip().partition("=")
        if name.strip().lower() != "q":
            continue
        try:
            q = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(q) or not 0 <= q <= 1:
            return None
        return q
    return 1.0
