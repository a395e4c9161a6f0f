from __future__ import annotations

import math
from typing import Any, Dict, Optional


def as_dict(v: Any) -> Dict[str, Any]:
    return v if isinstance(v, dict) else {}


def as_str(v: Any, default: str = "") -> str:
    if v is None:
        return default
    if isinstance(v, str):
        return v
    return str(v)


def as_int(v: Any, default: int = 0) -> int:
    try:
        if v is None:
            return default
        if isinstance(v, bool):
            return int(v)
        return int(v)
    except (TypeError, ValueError):
        return default


def as_bool(v: Any, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return v != 0
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "yes", "y", "on"):
            return True
        if s in ("0", "false", "no", "n", "off"):
            return False
    return default


def as_opt_str(v: Any) -> Optional[str]:
    """
    None / 空白字符串 -> None，其余去掉首尾空白。
    """
    if v is None:
        return None
    s = as_str(v).strip()
    return s or None


def as_opt_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def as_opt_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def clamp_int(v: int, lo: int, hi: int) -> int:
    if v < lo:
        return lo
    if v > hi:
        return hi
    return v


def floor_ticks(v: Optional[int]) -> int:
    """
    tick 数值的统一下限：None / 负数 -> 0（负时长没有意义，直接归零而不是报错）。
    """
    if v is None:
        return 0
    return max(0, int(v))


def sanitize_threshold(v: Optional[float]) -> Optional[float]:
    """
    detection_threshold：NaN/inf -> None，其余夹到 [0, 1]。
    """
    if v is None:
        return None
    f = float(v)
    if math.isnan(f) or math.isinf(f):
        return None
    return max(0.0, min(1.0, f))
