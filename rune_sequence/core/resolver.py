from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from core.models.ability import AbilityLookup
from rune_sequence.ast.nodes import (
    Alternative,
    GroupAlternative,
    MarkerAlternative,
    Step,
    TokenAlternative,
)
from rune_sequence.errors import UnknownAbilityError

from .models.effective import EffectiveAbilityConfig
from .models.overrides import AbilityOverrides
from .modifiers.catalog import DEFAULT_CATALOG, ModifierCatalog
from .modifiers.engine import derive_overrides

log = logging.getLogger(__name__)


def resolve(
    alternative: Alternative,
    database: AbilityLookup,
    *,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    ability_overrides: Optional[Mapping[str, AbilityOverrides]] = None,
) -> EffectiveAbilityConfig:
    """
    某一次出现的生效配置，叠加顺序（后者覆盖前者）：

    1) 技能库基础数据
    2) `#@key` 整条循环的覆盖
    3) 修饰符效果，按 modifiers 的书写顺序
    4) `#*N` 单实例覆盖

    纯函数：不修改 database / catalog / alternative，相同输入总得到相等输出。
    """
    if not isinstance(alternative, TokenAlternative):
        raise TypeError(f"resolve() needs a token alternative, got {type(alternative).__name__}")

    key = alternative.key
    base = database.lookup(key)
    if base is None:
        raise UnknownAbilityError(key)

    cfg = EffectiveAbilityConfig.from_base(key, base)
    cfg = cfg.apply((ability_overrides or {}).get(key))
    cfg = cfg.apply(derive_overrides(key, alternative.modifiers, catalog))
    return cfg.apply(alternative.overrides)


def resolve_step(
    step: Step,
    database: AbilityLookup,
    *,
    strict: bool = False,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    ability_overrides: Optional[Mapping[str, AbilityOverrides]] = None,
) -> List[EffectiveAbilityConfig]:
    """
    一个 step 内所有技能 token 的生效配置（展开分组，跳过 tooltip）。

    strict=False 时查不到的技能跳过（debug 日志）；strict=True 时抛 UnknownAbilityError。
    """
    out: List[EffectiveAbilityConfig] = []
    for term in step.terms:
        for alt in term.alternatives:
            _collect(alt, database, out, strict=strict, catalog=catalog, ability_overrides=ability_overrides)
    return out


def _collect(
    alt: Alternative,
    database: AbilityLookup,
    out: List[EffectiveAbilityConfig],
    *,
    strict: bool,
    catalog: ModifierCatalog,
    ability_overrides: Optional[Mapping[str, AbilityOverrides]],
) -> None:
    if isinstance(alt, MarkerAlternative):
        return
    if isinstance(alt, GroupAlternative):
        for inner in alt.definition.steps:
            out.extend(resolve_step(inner, database, strict=strict, catalog=catalog, ability_overrides=ability_overrides))
        return
    if isinstance(alt, TokenAlternative):
        try:
            out.append(resolve(alt, database, catalog=catalog, ability_overrides=ability_overrides))
        except UnknownAbilityError:
            if strict:
                raise
            log.debug("skip unknown ability in step: %s", alt.key)
        return
    raise TypeError(f"unknown alternative type: {type(alt).__name__}")
