from __future__ import annotations

"""
rune_sequence.core.runtime

运行期计时：
- AbilityTimingProfile: 单个技能的计时投影（可挂临时 GCD 覆盖）
- StepTimingView / StepTimingSnapshot: 只读、感知暂停的 step 计时视图
- StepTimer: 执行引擎侧的计时与暂停记账
"""

from .clock import mono_ms
from .timing import (
    DEFAULT_GCD_TICKS,
    DEFAULT_TICK_MS,
    AbilityTimingProfile,
    StepTimingSnapshot,
    StepTimingView,
    TimingConfig,
)
from .step_timer import StepTimer, TimingTransformer

__all__ = [
    "mono_ms",
    "DEFAULT_GCD_TICKS",
    "DEFAULT_TICK_MS",
    "AbilityTimingProfile",
    "StepTimingSnapshot",
    "StepTimingView",
    "TimingConfig",
    "StepTimer",
    "TimingTransformer",
]
