from __future__ import annotations

import math
from typing import Optional

from pygame.math import Vector2


def _clone(vector: Optional[Vector2]) -> Vector2:
    if vector is None:
        return Vector2()
    return Vector2(vector.x, vector.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _is_finite(vector: Optional[Vector2]) -> bool:
    return vector is not None and math.isfinite(vector.x) and math.isfinite(vector.y)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
