# rune_sequence/core/__init__.py
"""
技能数据的覆盖/生效配置模型、修饰符目录与运行期计时。

注意：这里不要 import resolver / runtime，否则会与 rune_sequence.ast 形成循环导入。
请显式从 rune_sequence.core.resolver import resolve 导入。
"""

from .models import AbilityOverrides, EffectiveAbilityConfig

__all__ = [
    "AbilityOverrides",
    "EffectiveAbilityConfig",
]
