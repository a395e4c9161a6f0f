from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.models.ability import AbilityData
from core.models.common import floor_ticks, sanitize_threshold

from .overrides import AbilityOverrides


@dataclass(frozen=True)
class EffectiveAbilityConfig:
    """
    某个技能在某一次出现时的生效配置 = 基础数据 + 覆盖。

    每次解算都重新计算，不落盘、不缓存；计时模型只读取
    triggers_gcd / cast_duration / cooldown 三个字段。
    """
    ability_key: str
    triggers_gcd: bool
    cast_duration: int
    cooldown: int
    type: Optional[str] = None
    level: Optional[int] = None
    detection_threshold: Optional[float] = None
    mask: Optional[str] = None

    @staticmethod
    def from_base(ability_key: str, base: AbilityData) -> "EffectiveAbilityConfig":
        return EffectiveAbilityConfig(
            ability_key=ability_key,
            triggers_gcd=bool(base.triggers_gcd),
            cast_duration=floor_ticks(base.cast_duration),
            cooldown=floor_ticks(base.cooldown),
            type=base.type,
            level=base.level,
            detection_threshold=sanitize_threshold(base.detection_threshold),
            mask=base.mask,
        )

    def apply(self, overrides: Optional[AbilityOverrides]) -> "EffectiveAbilityConfig":
        """
        返回叠加 overrides 后的新对象（self 不变）；非法值在这里统一兜底：
        - tick 负数 -> 0
        - level 负数 -> 0
        - detection_threshold NaN/inf -> None，其余夹到 [0, 1]
        - mask/type 去首尾空白，空串视为未覆盖
        """
        if overrides is None or overrides.is_empty():
            return self

        def pick(value, current):
            return current if value is None else value

        mask = (overrides.mask or "").strip() or None
        type_ = (overrides.type or "").strip() or None
        level = overrides.level if overrides.level is None else max(0, int(overrides.level))

        threshold = self.detection_threshold
        if overrides.detection_threshold is not None:
            threshold = sanitize_threshold(overrides.detection_threshold)

        return EffectiveAbilityConfig(
            ability_key=self.ability_key,
            triggers_gcd=bool(pick(overrides.triggers_gcd, self.triggers_gcd)),
            cast_duration=floor_ticks(pick(overrides.cast_duration, self.cast_duration)),
            cooldown=floor_ticks(pick(overrides.cooldown, self.cooldown)),
            type=pick(type_, self.type),
            level=pick(level, self.level),
            detection_threshold=threshold,
            mask=pick(mask, self.mask),
        )
