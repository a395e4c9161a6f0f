from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from rune_sequence.core.models.overrides import AbilityOverrides

from .catalog import DEFAULT_CATALOG, ModifierCatalog, ModifierDefinition

if TYPE_CHECKING:
    from rune_sequence.ast.tokenizer import Token

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FusionMatch:
    """
    一次融合的结果：
    - modifiers: 修饰符 canonical key（按书写顺序）
    - target   : 目标 word token（保留其 `[*N]` 标签）
    - next_index: 目标 token 之后的下标
    """
    modifiers: Tuple[str, ...]
    target: Token
    next_index: int


def list_definitions_for_target(
    category: Optional[str],
    catalog: ModifierCatalog = DEFAULT_CATALOG,
) -> Tuple[ModifierDefinition, ...]:
    """
    某个目标可用的修饰符（供编辑器补全之类的调用方枚举），按 canonical key 排序。
    """
    return catalog.definitions_for_target(category)


def match_fusion(
    tokens: Sequence[Token],
    index: int,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
) -> Optional[FusionMatch]:
    """
    解析器在 term 的第一个备选处调用：

    tokens[index] 是修饰符，后面（直接相邻，或隔一个 `+`）依次是更多修饰符，
    最后是链上所有修饰符都接受的目标，并且目标后面（跳过 tooltip）不是 `/`，才算融合成功。
    否则返回 None，修饰符按普通技能 token 处理。
    """
    first = tokens[index] if 0 <= index < len(tokens) else None
    if first is None or first.kind != "word" or first.label is not None:
        return None
    first_def = catalog.resolve(first.text)
    if first_def is None:
        return None

    chain: List[ModifierDefinition] = [first_def]
    i = index + 1
    while True:
        if i < len(tokens) and tokens[i].kind == "plus":
            i += 1
        if i >= len(tokens) or tokens[i].kind != "word":
            return None
        cand = tokens[i]

        next_def = catalog.resolve(cand.text) if cand.label is None else None
        if next_def is not None and not all(d.accepts_target(cand.text) for d in chain):
            chain.append(next_def)
            i += 1
            continue

        if not all(d.accepts_target(cand.text) for d in chain):
            return None
        j = i + 1
        while j < len(tokens) and tokens[j].kind == "tooltip":
            j += 1
        if j < len(tokens) and tokens[j].kind == "slash":
            return None

        mods = tuple(d.canonical_key for d in chain)
        log.debug("fused modifiers %s onto %s", mods, cand.text)
        return FusionMatch(modifiers=mods, target=cand, next_index=i + 1)


def derive_overrides(
    ability_key: str,
    modifiers: Sequence[str],
    catalog: ModifierCatalog = DEFAULT_CATALOG,
) -> Optional[AbilityOverrides]:
    """
    把修饰符效果按顺序叠成一个覆盖（后者覆盖前者）；未知或不适用的修饰符跳过并记 warning。
    """
    merged: Optional[AbilityOverrides] = None
    for key in modifiers or ():
        d = catalog.definition_for_key(key) or catalog.resolve(key)
        if d is None:
            log.warning("unknown modifier %r on %s skipped", key, ability_key)
            continue
        if not d.accepts_target(ability_key):
            log.warning("modifier %s does not apply to %s, skipped", d.canonical_key, ability_key)
            continue
        merged = AbilityOverrides.merge(merged, d.effect.as_overrides())
    return merged
