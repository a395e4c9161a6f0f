from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.models.ability import MAX_TICKS
from core.models.common import sanitize_threshold

from rune_sequence.core.models.overrides import AbilityOverrides

log = logging.getLogger(__name__)


# 富文本复制粘贴常带进来的不可见字符
_INVISIBLES = {
    "\u200b",  # zero-width space
    "\u200c",  # zero-width non-joiner
    "\u200d",  # zero-width joiner
    "\u2060",  # word joiner
    "\ufeff",  # BOM
    "\u00a0",  # no-break space
    "\u202f",  # narrow no-break space
    "\u200e",  # LTR mark
    "\u200f",  # RTL mark
    "\u180e",  # mongolian vowel separator
}

_PER_INSTANCE_LINE = re.compile(r"^#\*(\d+)\s+(.+)$")
_PER_ABILITY_LINE = re.compile(r"^#@(\S+)\s+(.+)$")


def remove_invisibles(text: Optional[str]) -> str:
    if not text:
        return ""
    return "".join(ch for ch in text if ch not in _INVISIBLES)


def strip_surrounding_quotes(text: str) -> str:
    """
    整段被一对双引号包住时去掉这对引号（只去一层）。
    """
    s = (text or "").strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        return s[1:-1].strip()
    return text or ""


def sanitize_expression(text: Optional[str]) -> str:
    return strip_surrounding_quotes(remove_invisibles(text))


@dataclass(frozen=True)
class ParsedRotation:
    """
    循环文本拆分后的三部分：
    - expression  : 表达式行（保留换行，`#*` / `#@` 行已移除）
    - per_instance: label -> 覆盖（`#*N ...`）
    - per_ability : ability key -> 覆盖（`#@key ...`）
    """
    expression: str = ""
    per_instance: Dict[str, AbilityOverrides] = field(default_factory=dict)
    per_ability: Dict[str, AbilityOverrides] = field(default_factory=dict)


def split_rotation(text: Optional[str]) -> ParsedRotation:
    """
    拆出设置行；同一 label/key 出现多行时按字段合并，后写的生效。
    畸形行/键值对记 warning 后忽略，不会让整段文本失败。
    """
    normalized = sanitize_expression(text)
    expression_lines: List[str] = []
    per_instance: Dict[str, AbilityOverrides] = {}
    per_ability: Dict[str, AbilityOverrides] = {}

    for raw in normalized.splitlines():
        line = raw.strip()
        if line.startswith("#*"):
            _collect_line(line, _PER_INSTANCE_LINE, per_instance, "per-instance")
        elif line.startswith("#@"):
            _collect_line(line, _PER_ABILITY_LINE, per_ability, "per-ability")
        else:
            expression_lines.append(raw)

    return ParsedRotation(
        expression="\n".join(expression_lines).strip(),
        per_instance=per_instance,
        per_ability=per_ability,
    )


def _collect_line(line: str, pattern: "re.Pattern[str]", out: Dict[str, AbilityOverrides], kind: str) -> None:
    m = pattern.match(line)
    if m is None:
        log.warning("ignoring malformed %s settings line: %r", kind, line)
        return
    target, payload = m.group(1), m.group(2).strip()
    delta = parse_settings_payload(payload, line)
    if delta is None:
        return
    merged = AbilityOverrides.merge(out.get(target), delta)
    if merged is not None:
        out[target] = merged


def parse_settings_payload(payload: str, source_line: str = "") -> Optional[AbilityOverrides]:
    """
    解析 `key=value key=value ...`；一个合法键都没有时返回 None。
    """
    values: Dict[str, object] = {}
    for part in (payload or "").split():
        key, sep, value = part.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if not sep or not key or not value:
            log.warning("ignoring malformed key/value pair %r in settings line %r", part, source_line)
            continue

        if key in ("triggers_gcd", "gcd_cooldown"):
            parsed_bool = _parse_bool_strict(value)
            if parsed_bool is None:
                log.warning("ignoring invalid boolean %r for %s in settings line %r", value, key, source_line)
                continue
            values["triggers_gcd"] = parsed_bool
        elif key in ("cast_duration", "cooldown"):
            ticks = _parse_ticks(value)
            if ticks is None:
                log.warning("ignoring invalid %s %r in settings line %r", key, value, source_line)
                continue
            values[key] = ticks
        elif key == "detection_threshold":
            threshold = _parse_threshold(value)
            if threshold is None:
                log.warning("ignoring invalid detection_threshold %r in settings line %r", value, source_line)
                continue
            values["detection_threshold"] = threshold
        elif key == "level":
            level = _parse_int(value)
            if level is None:
                log.warning("ignoring invalid level %r in settings line %r", value, source_line)
                continue
            values["level"] = max(0, level)
        elif key in ("mask", "type"):
            values[key] = value
        else:
            log.warning("ignoring unknown settings key %r in settings line %r", key, source_line)

    if not values:
        return None
    return AbilityOverrides(**values)  # type: ignore[arg-type]


def format_settings_payload(overrides: Optional[AbilityOverrides]) -> str:
    """
    parse_settings_payload 的逆操作；含空白的字符串值无法表达，跳过并记 warning。
    """
    if overrides is None or overrides.is_empty():
        return ""
    parts: List[str] = []

    def add_str(key: str, value: Optional[str]) -> None:
        if not value:
            return
        if any(ch.isspace() for ch in value):
            log.warning("skipping %s=%r: value contains whitespace", key, value)
            return
        parts.append(f"{key}={value}")

    add_str("type", overrides.type)
    if overrides.level is not None:
        parts.append(f"level={overrides.level}")
    if overrides.triggers_gcd is not None:
        parts.append(f"triggers_gcd={'true' if overrides.triggers_gcd else 'false'}")
    if overrides.cast_duration is not None:
        parts.append(f"cast_duration={overrides.cast_duration}")
    if overrides.cooldown is not None:
        parts.append(f"cooldown={overrides.cooldown}")
    if overrides.detection_threshold is not None:
        parts.append(f"detection_threshold={overrides.detection_threshold}")
    add_str("mask", overrides.mask)
    return " ".join(parts)


def _parse_bool_strict(value: str) -> Optional[bool]:
    v = value.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    return None


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def _parse_ticks(value: str) -> Optional[int]:
    n = _parse_int(value)
    if n is None or n < 0 or n > MAX_TICKS:
        return None
    return n


def _parse_threshold(value: str) -> Optional[float]:
    try:
        return sanitize_threshold(float(value))
    except ValueError:
        return None
