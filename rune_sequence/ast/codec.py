from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Set

from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.core.modifiers.catalog import DEFAULT_CATALOG, ModifierCatalog

from .nodes import (
    Alternative,
    GroupAlternative,
    MarkerAlternative,
    SequenceDefinition,
    Step,
    Term,
    TokenAlternative,
)
from .parser import DEFAULT_PARSER_CONFIG, ParserConfig, parse
from .settings import ParsedRotation, format_settings_payload, split_rotation
from .tokenizer import ARROW

log = logging.getLogger(__name__)

__all__ = [
    "ParsedRotation",
    "split_rotation",
    "render",
    "export_simple",
    "export_deep",
    "collect_labels",
    "collect_ability_keys",
]


# ----------- render -----------

def render(definition: SequenceDefinition, *, labels: bool = True) -> str:
    """
    SequenceDefinition -> 规范文本：不带空格，`→ + /` 分隔，
    分组加括号，修饰符写成 `mod+target`，tooltip 写成 `(text)`（括号转义）。
    """
    return ARROW.join(_render_step(s, labels) for s in definition.steps)


def _render_step(step: Step, labels: bool) -> str:
    return "+".join(_render_term(t, labels) for t in step.terms)


def _render_term(term: Term, labels: bool) -> str:
    parts: List[str] = []
    prev_choice = False
    for alt in term.alternatives:
        if isinstance(alt, MarkerAlternative):
            parts.append(_render_marker(alt))
            continue
        if prev_choice:
            parts.append("/")
        parts.append(_render_alt(alt, labels))
        prev_choice = True
    return "".join(parts)


def _render_alt(alt: Alternative, labels: bool) -> str:
    if isinstance(alt, TokenAlternative):
        key = alt.key
        if labels and alt.instance_label is not None:
            key = f"{key}[*{alt.instance_label}]"
        if alt.modifiers:
            return "+".join(list(alt.modifiers) + [key])
        return key
    if isinstance(alt, GroupAlternative):
        return "(" + render(alt.definition, labels=labels) + ")"
    if isinstance(alt, MarkerAlternative):
        return _render_marker(alt)
    raise TypeError(f"unknown alternative type: {type(alt).__name__}")


def _render_marker(marker: MarkerAlternative) -> str:
    body = marker.text.replace("(", "\\(").replace(")", "\\)")
    return f"({body})"


# ----------- export -----------

def export_simple(
    text: Optional[str],
    *,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
) -> str:
    """
    导出给外部工具的纯表达式：不含标签、不含设置行。
    """
    return render(parse(text, catalog=catalog, config=config), labels=False)


def export_deep(
    text: Optional[str],
    per_instance: Optional[Mapping[str, AbilityOverrides]] = None,
    per_ability: Optional[Mapping[str, AbilityOverrides]] = None,
    *,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
) -> str:
    """
    表达式（带标签）+ 设置行：先 `#@key ...`，再 `#*N ...`。

    per_instance / per_ability 为 None 时沿用文本里自带的设置行；
    只导出表达式里确实出现的 label / ability key，其余记 warning 后丢弃。
    """
    definition = parse(text, catalog=catalog, config=config)
    own = split_rotation(text)
    if per_instance is None:
        per_instance = own.per_instance
    if per_ability is None:
        per_ability = own.per_ability
    lines: List[str] = [render(definition, labels=True)]

    present_keys = collect_ability_keys(definition)
    for key in sorted(per_ability):
        if key not in present_keys:
            log.warning("per-ability settings for %r dropped: no matching token", key)
            continue
        if any(ch.isspace() for ch in key):
            log.warning("per-ability settings for %r dropped: key contains whitespace", key)
            continue
        payload = format_settings_payload(per_ability[key])
        if payload:
            lines.append(f"#@{key} {payload}")

    present_labels = collect_labels(definition)
    for label in sorted(per_instance, key=_label_sort_key):
        if label not in present_labels:
            log.warning("per-instance settings for label *%s dropped: no matching label", label)
            continue
        payload = format_settings_payload(per_instance[label])
        if payload:
            lines.append(f"#*{label} {payload}")

    return "\n".join(lines)


def collect_labels(definition: SequenceDefinition) -> Set[str]:
    return {t.instance_label for t in definition.iter_tokens() if t.instance_label is not None}


def collect_ability_keys(definition: SequenceDefinition) -> Set[str]:
    return {t.key for t in definition.iter_tokens()}


def _label_sort_key(label: str):
    return (0, int(label), "") if label.isdigit() else (1, 0, label)

