# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# 项目根目录 = tests 上一层目录
ROOT = Path(__file__).resolve().parents[1]

# 确保项目根在 sys.path 中，方便 `import core` / `import rune_sequence` 等绝对导入
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from core.models.ability import AbilityDatabase  # noqa: E402


@pytest.fixture
def ability_db() -> AbilityDatabase:
    """
    一个小技能库：
    - spec / eofspec: 触发 GCD、无读条、无冷却
    - cane          : 冷却 100 tick
    - tc            : 读条 5 tick
    - surge         : 不触发 GCD
    """
    return AbilityDatabase.from_dict(
        {
            "spec": {"triggers_gcd": True, "cast_duration": 0, "cooldown": 0},
            "eofspec": {"triggers_gcd": True, "cast_duration": 0, "cooldown": 0},
            "cane": {"cooldown": 100, "common_name": "Cane", "detection_threshold": 0.9},
            "tc": {"cast_duration": 5},
            "surge": {"triggers_gcd": False},
        }
    )
