from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Protocol

from core.models.common import as_dict, as_int, clamp_int, floor_ticks

from rune_sequence.core.models.effective import EffectiveAbilityConfig


DEFAULT_GCD_TICKS = 3
DEFAULT_TICK_MS = 600


@dataclass(frozen=True)
class TimingConfig:
    """
    计时参数：
    - tick_ms          : 一个 tick 的毫秒数
    - default_gcd_ticks: 触发 GCD 且无读条时占用的 tick 数
    """
    tick_ms: int = DEFAULT_TICK_MS
    default_gcd_ticks: int = DEFAULT_GCD_TICKS

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TimingConfig":
        d = as_dict(d)
        return TimingConfig(
            tick_ms=clamp_int(as_int(d.get("tick_ms", DEFAULT_TICK_MS), DEFAULT_TICK_MS), 1, 60_000),
            default_gcd_ticks=clamp_int(as_int(d.get("default_gcd_ticks", DEFAULT_GCD_TICKS), DEFAULT_GCD_TICKS), 0, 100),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"tick_ms": int(self.tick_ms), "default_gcd_ticks": int(self.default_gcd_ticks)}


@dataclass(frozen=True)
class AbilityTimingProfile:
    """
    EffectiveAbilityConfig 的纯计时投影。

    gcd_ticks_override 是运行期的临时调整（例如 buff 缩短 GCD），
    只存在于这个对象上，不回写 EffectiveAbilityConfig 或技能库。
    tick 字段构造时夹到 >= 0。
    """
    ability_key: str
    triggers_gcd: bool
    cast_duration_ticks: int
    cooldown_ticks: int
    gcd_ticks_override: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cast_duration_ticks", floor_ticks(self.cast_duration_ticks))
        object.__setattr__(self, "cooldown_ticks", floor_ticks(self.cooldown_ticks))
        if self.gcd_ticks_override is not None:
            object.__setattr__(self, "gcd_ticks_override", floor_ticks(self.gcd_ticks_override))

    @staticmethod
    def from_config(effective: EffectiveAbilityConfig) -> "AbilityTimingProfile":
        return AbilityTimingProfile(
            ability_key=effective.ability_key,
            triggers_gcd=bool(effective.triggers_gcd),
            cast_duration_ticks=effective.cast_duration,
            cooldown_ticks=effective.cooldown,
        )

    def with_gcd_override(self, ticks: Optional[int]) -> "AbilityTimingProfile":
        return replace(self, gcd_ticks_override=ticks)

    def effective_ticks(self, default_gcd_ticks: int = DEFAULT_GCD_TICKS) -> int:
        """
        该技能让 step 占用的 tick 数 = max(读条或 GCD, 自身冷却)。
        有读条时读条替代 GCD；不触发 GCD 且无读条时这一项为 0。
        """
        if self.cast_duration_ticks > 0:
            busy = self.cast_duration_ticks
        elif self.triggers_gcd:
            busy = self.gcd_ticks_override if self.gcd_ticks_override is not None else max(0, int(default_gcd_ticks))
        else:
            busy = 0
        return max(busy, self.cooldown_ticks)


class StepTimingView(Protocol):
    """
    执行引擎每个 tick 轮询的只读视图；本身不推进时钟，"now" 由调用方传入。
    """

    def step_start_time_ms(self) -> Optional[int]:
        """
        当前 step 的开始时间；还没开始时为 None。
        """
        ...

    def step_duration_ms(self) -> int:
        ...

    def effective_elapsed_ms(self, now_ms: int) -> int:
        """
        已经过的有效时间（扣除暂停时长）；暂停期间固定在暂停那一刻的值。
        """
        ...

    def is_paused(self) -> bool:
        ...


@dataclass(frozen=True)
class StepTimingSnapshot:
    """
    StepTimingView 的不可变实现。start_ms 为 None 表示还没开始任何 step（0 是合法的开始时间）。
    """
    start_ms: Optional[int] = None
    duration_ms: int = 0
    paused: bool = False
    paused_at_ms: int = 0
    total_paused_ms: int = 0

    def step_start_time_ms(self) -> Optional[int]:
        return self.start_ms

    def step_duration_ms(self) -> int:
        return self.duration_ms

    def is_paused(self) -> bool:
        return self.paused

    def effective_elapsed_ms(self, now_ms: int) -> int:
        if self.start_ms is None:
            return 0
        paused_ms = self.total_paused_ms
        if self.paused:
            paused_ms += int(now_ms) - self.paused_at_ms
        return (int(now_ms) - self.start_ms) - paused_ms
