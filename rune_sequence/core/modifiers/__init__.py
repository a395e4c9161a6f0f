from __future__ import annotations

"""
rune_sequence.core.modifiers

修饰符（武器特攻等）：
- ModifierCatalog / DEFAULT_CATALOG: 只读目录
- match_fusion: 解析时把 "修饰符 + 目标" 融合成一个 token
- derive_overrides: 修饰符效果 -> AbilityOverrides
"""

from .catalog import (
    DEFAULT_CATALOG,
    ModifierCatalog,
    ModifierDefinition,
    ModifierEffect,
)
from .engine import FusionMatch, derive_overrides, list_definitions_for_target, match_fusion

__all__ = [
    "DEFAULT_CATALOG",
    "ModifierCatalog",
    "ModifierDefinition",
    "ModifierEffect",
    "FusionMatch",
    "derive_overrides",
    "list_definitions_for_target",
    "match_fusion",
]
