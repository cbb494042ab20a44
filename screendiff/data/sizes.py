"""Viewport sizes, based on the site's CSS width breakpoints.

All sizes except teapot and breadbox assume a 16:9 screen; all except xs are
landscape.
"""

from __future__ import annotations

from screendiff.models.task import Size

_SIZES: dict[str, tuple[int, int]] = {
    "xs": (420, 755),
    "s": (630, 354),
    "m": (860, 483),
    "l": (1085, 610),
    "xl": (1440, 812),
    "teapot": (640, 790),
    "breadbox": (870, 640),
}


def get_size(name: str) -> Size | None:
    dims = _SIZES.get(name)
    if dims is None:
        return None
    return Size(name=name, width=dims[0], height=dims[1])


def available_sizes() -> list[str]:
    return list(_SIZES)
