from __future__ import annotations

import time


def mono_ms() -> int:
    """
    单调时钟毫秒数；核心逻辑从不自己读时钟，只给调用方取 "now" 用。
    """
    return int(time.monotonic() * 1000)
