from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Mapping, Optional

from core.models.ability import AbilityLookup
from rune_sequence.ast.nodes import Step
from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.core.modifiers.catalog import DEFAULT_CATALOG, ModifierCatalog
from rune_sequence.core.resolver import resolve_step

from .timing import AbilityTimingProfile, StepTimingSnapshot, TimingConfig

log = logging.getLogger(__name__)


TimingTransformer = Callable[[AbilityTimingProfile], Optional[AbilityTimingProfile]]


class StepTimer:
    """
    当前 step 的计时与暂停记账（执行引擎持有，对外只暴露 view()）。

    - 所有状态都在一个不可变 StepTimingSnapshot 里，写操作在锁内整体替换
    - view() 直接返回当前快照，跨线程读取也能看到一致的暂停/恢复状态
    - 所有时间点都由调用方传入（now_ms），本类不读时钟
    """

    def __init__(self, config: Optional[TimingConfig] = None) -> None:
        self._config = config or TimingConfig()
        self._lock = threading.Lock()
        self._snap = StepTimingSnapshot()

    @property
    def config(self) -> TimingConfig:
        return self._config

    def view(self) -> StepTimingSnapshot:
        return self._snap

    # ----- step lifecycle -----

    def start_step(
        self,
        step: Step,
        database: AbilityLookup,
        now_ms: int,
        timing_transformer: Optional[TimingTransformer] = None,
        *,
        catalog: ModifierCatalog = DEFAULT_CATALOG,
        ability_overrides: Optional[Mapping[str, AbilityOverrides]] = None,
    ) -> int:
        """
        计算 step 时长并从 now_ms 开始计时，返回时长（ms）。
        """
        duration = self.calculate_step_duration_ms(
            step,
            database,
            timing_transformer,
            catalog=catalog,
            ability_overrides=ability_overrides,
        )
        with self._lock:
            self._snap = StepTimingSnapshot(start_ms=int(now_ms), duration_ms=duration)
        log.debug("step started at %d, duration=%dms", int(now_ms), duration)
        return duration

    def restart_at(self, start_ms: int) -> None:
        with self._lock:
            self._snap = StepTimingSnapshot(start_ms=int(start_ms), duration_ms=self._snap.duration_ms)

    def pause(self, now_ms: int) -> None:
        with self._lock:
            s = self._snap
            if s.paused:
                return
            self._snap = replace(s, paused=True, paused_at_ms=int(now_ms))

    def resume(self, now_ms: int) -> None:
        with self._lock:
            s = self._snap
            if not s.paused:
                return
            self._snap = replace(
                s,
                paused=False,
                paused_at_ms=0,
                total_paused_ms=s.total_paused_ms + max(0, int(now_ms) - s.paused_at_ms),
            )

    def is_step_satisfied(self, now_ms: int) -> bool:
        s = self._snap
        if s.paused:
            return False
        return s.effective_elapsed_ms(now_ms) >= s.duration_ms

    def force_satisfied_at(self, now_ms: int) -> None:
        """
        把开始时间往前挪，让 step 在 now_ms 恰好满足（暂停中不生效）。
        """
        with self._lock:
            s = self._snap
            if s.paused:
                return
            self._snap = replace(s, start_ms=int(now_ms) - s.duration_ms - s.total_paused_ms)

    def set_step_duration_ms(self, duration_ms: int) -> None:
        with self._lock:
            self._snap = replace(self._snap, duration_ms=max(0, int(duration_ms)))

    def reset(self) -> None:
        with self._lock:
            self._snap = StepTimingSnapshot()

    # ----- duration -----

    def calculate_step_duration_ms(
        self,
        step: Step,
        database: AbilityLookup,
        timing_transformer: Optional[TimingTransformer] = None,
        *,
        catalog: ModifierCatalog = DEFAULT_CATALOG,
        ability_overrides: Optional[Mapping[str, AbilityOverrides]] = None,
    ) -> int:
        """
        step 时长 = 所有技能中最长的 effective_ticks * tick_ms。
        查不到的技能不参与计算。
        """
        max_ticks = 0
        configs = resolve_step(step, database, catalog=catalog, ability_overrides=ability_overrides)
        for cfg in configs:
            profile = AbilityTimingProfile.from_config(cfg)
            if timing_transformer is not None:
                profile = timing_transformer(profile) or profile
            ticks = profile.effective_ticks(self._config.default_gcd_ticks)
            if ticks > max_ticks:
                max_ticks = ticks
        return max_ticks * int(self._config.tick_ms)
