from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, List, Optional

from core.logging_context import log_context, new_corr_id, rotation_tag
from core.models.ability import AbilityLookup
from rune_sequence.core.modifiers.catalog import DEFAULT_CATALOG, ModifierCatalog
from rune_sequence.errors import ParseError

from .diagnostics import Diagnostic, alternative_path, err, has_errors, info, pjoin, warn
from .nodes import (
    GroupAlternative,
    MarkerAlternative,
    SequenceDefinition,
    TokenAlternative,
)
from .parser import DEFAULT_PARSER_CONFIG, ParserConfig, parse
from .settings import split_rotation

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileResult:
    definition: Optional[SequenceDefinition]
    diagnostics: List[Diagnostic]

    def ok(self) -> bool:
        return self.definition is not None and not has_errors(self.diagnostics)

    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error()]


def compile_rotation(
    text: Optional[str],
    database: Optional[AbilityLookup] = None,
    *,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    ability_names: Optional[AbstractSet[str]] = None,
) -> CompileResult:
    """
    编译入口：
    - 先 parse（语法错误 -> 一条 error，definition 为 None）
    - 再做引用检查（database 为 None 时跳过技能存在性检查）
    """
    with log_context(corr_id=new_corr_id(), rotation=rotation_tag(text), action="compile_rotation"):
        diags: List[Diagnostic] = []
        try:
            definition = parse(text, catalog=catalog, config=config, ability_names=ability_names)
        except ParseError as e:
            log.info("rotation rejected: %s", e)
            diags.append(err(e.code, "$", e.message, detail="" if e.position is None else f"pos={e.position}"))
            return CompileResult(definition=None, diagnostics=diags)

        _semantic_validate(definition, text=text, database=database, catalog=catalog, diags=diags)

        n_err = sum(1 for d in diags if d.is_error())
        log.info("rotation compiled: steps=%d errors=%d diagnostics=%d", len(definition), n_err, len(diags))
        return CompileResult(definition=definition, diagnostics=diags)


def _semantic_validate(
    definition: SequenceDefinition,
    *,
    text: Optional[str],
    database: Optional[AbilityLookup],
    catalog: ModifierCatalog,
    diags: List[Diagnostic],
) -> None:
    settings = split_rotation(text)

    def walk_token(t: TokenAlternative, p: str) -> None:
        if database is not None and database.lookup(t.key) is None:
            diags.append(err("ability.unknown", p, "引用了不存在的技能", detail=t.key))

        for mod in t.modifiers:
            if catalog.definition_for_key(mod) is None:
                diags.append(warn("modifier.unknown", p, "未知修饰符，解算时会被忽略", detail=mod))

        label = t.instance_label
        if label is None:
            return
        if label not in settings.per_instance:
            diags.append(info("label.unused", p, "标签没有对应的 #* 设置行", detail=label))
        elif t.modifiers:
            diags.append(warn("label.settings_dropped", p, "带修饰符的技能不接受单实例设置", detail=label))

    def walk(d: SequenceDefinition, base: str) -> None:
        for si, step in enumerate(d.steps):
            for ti, term in enumerate(step.terms):
                for ai, alt in enumerate(term.alternatives):
                    ap = alternative_path(base, si, ti, ai)
                    if isinstance(alt, TokenAlternative):
                        walk_token(alt, ap)
                    elif isinstance(alt, GroupAlternative):
                        walk(alt.definition, pjoin(ap, ".definition"))
                    elif isinstance(alt, MarkerAlternative):
                        continue
                    else:
                        raise TypeError(f"unknown alternative type: {type(alt).__name__}")

    walk(definition, "$")

    present = {t.key for t in definition.iter_tokens()}
    for key in definition.ability_overrides:
        if key not in present:
            diags.append(warn("ability_settings.unused", "$", "#@ 设置行没有对应的技能", detail=key))
