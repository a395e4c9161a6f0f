from __future__ import annotations

from .overrides import AbilityOverrides
from .effective import EffectiveAbilityConfig

__all__ = [
    "AbilityOverrides",
    "EffectiveAbilityConfig",
]
