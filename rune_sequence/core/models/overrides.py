from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from core.models.common import as_dict, as_opt_float, as_opt_int, as_opt_str


@dataclass(frozen=True)
class AbilityOverrides:
    """
    技能设置覆盖：字段为 None 表示沿用基础配置。

    来源：
    - 循环文本里的 `#*N key=value ...`（单个实例，挂在 `[*N]` 标签的 token 上）
    - 循环文本里的 `#@abilityKey key=value ...`（整条循环里该技能的所有出现）
    - 修饰符（ModifierEffect.as_overrides()，只有计时相关的三个字段）
    """
    type: Optional[str] = None
    level: Optional[int] = None
    triggers_gcd: Optional[bool] = None
    cast_duration: Optional[int] = None
    cooldown: Optional[int] = None
    detection_threshold: Optional[float] = None
    mask: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @staticmethod
    def merge(base: Optional["AbilityOverrides"], delta: Optional["AbilityOverrides"]) -> Optional["AbilityOverrides"]:
        """
        字段级合并：delta 中非 None 的字段覆盖 base；合并结果为空时返回 None。
        """
        if base is None and delta is None:
            return None
        left = base or AbilityOverrides()
        right = delta or AbilityOverrides()
        merged = AbilityOverrides(**{
            f.name: getattr(right, f.name) if getattr(right, f.name) is not None else getattr(left, f.name)
            for f in fields(AbilityOverrides)
        })
        return None if merged.is_empty() else merged

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AbilityOverrides":
        d = as_dict(d)
        raw_gcd = d.get("triggers_gcd", None)
        return AbilityOverrides(
            type=as_opt_str(d.get("type", None)),
            level=as_opt_int(d.get("level", None)),
            triggers_gcd=raw_gcd if isinstance(raw_gcd, bool) else None,
            cast_duration=as_opt_int(d.get("cast_duration", None)),
            cooldown=as_opt_int(d.get("cooldown", None)),
            detection_threshold=as_opt_float(d.get("detection_threshold", None)),
            mask=as_opt_str(d.get("mask", None)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
