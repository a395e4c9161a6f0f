from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.models.common import as_dict, as_opt_int, as_str, clamp_int
from core.models.ability import MAX_TICKS

from rune_sequence.core.models.overrides import AbilityOverrides

log = logging.getLogger(__name__)


def normalize_key(key: Optional[str]) -> Optional[str]:
    """
    统一大小写与首尾空白；空串 -> None。
    """
    if key is None:
        return None
    s = str(key).strip().lower()
    return s or None


@dataclass(frozen=True)
class ModifierEffect:
    """
    修饰符的声明式效果，字段为 None 表示不改动：
    - triggers_gcd : 强制是否触发 GCD（目前只有“强制 False”这种用法）
    - cast_duration: 覆盖读条 tick
    - cooldown     : 覆盖冷却 tick
    """
    triggers_gcd: Optional[bool] = None
    cast_duration: Optional[int] = None
    cooldown: Optional[int] = None

    def as_overrides(self) -> AbilityOverrides:
        return AbilityOverrides(
            triggers_gcd=self.triggers_gcd,
            cast_duration=self.cast_duration,
            cooldown=self.cooldown,
        )

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ModifierEffect":
        d = as_dict(d)
        raw_gcd = d.get("triggers_gcd", None)
        cast = as_opt_int(d.get("cast_duration", None))
        cd = as_opt_int(d.get("cooldown", None))
        return ModifierEffect(
            triggers_gcd=raw_gcd if isinstance(raw_gcd, bool) else None,
            cast_duration=clamp_int(cast, 0, MAX_TICKS) if cast is not None else None,
            cooldown=clamp_int(cd, 0, MAX_TICKS) if cd is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.triggers_gcd is not None:
            out["triggers_gcd"] = bool(self.triggers_gcd)
        if self.cast_duration is not None:
            out["cast_duration"] = int(self.cast_duration)
        if self.cooldown is not None:
            out["cooldown"] = int(self.cooldown)
        return out


@dataclass(frozen=True)
class ModifierDefinition:
    """
    一个修饰符（通常是武器特攻）：

    - canonical_key: 规范名，写进 TokenAlternative.modifiers
    - aliases      : 文本里可以使用的写法（大小写不敏感），至少包含 canonical_key
    - targets      : 可融合的目标 ability key，允许 fnmatch 通配（如 "*spec"）
    - effect       : 声明式效果
    """
    canonical_key: str
    aliases: Tuple[str, ...] = ()
    targets: Tuple[str, ...] = ()
    effect: ModifierEffect = field(default_factory=ModifierEffect)

    def __post_init__(self) -> None:
        canonical = normalize_key(self.canonical_key)
        if canonical is None:
            raise ValueError("ModifierDefinition.canonical_key 不能为空")
        aliases = [canonical]
        for a in self.aliases or ():
            n = normalize_key(a)
            if n is not None and n not in aliases:
                aliases.append(n)
        targets = tuple(t for t in (normalize_key(x) for x in (self.targets or ())) if t is not None)
        object.__setattr__(self, "canonical_key", canonical)
        object.__setattr__(self, "aliases", tuple(aliases))
        object.__setattr__(self, "targets", targets)

    def accepts_target(self, ability_key: Optional[str]) -> bool:
        key = normalize_key(ability_key)
        if key is None:
            return False
        return any(fnmatch.fnmatchcase(key, pattern) for pattern in self.targets)

    @staticmethod
    def from_dict(canonical_key: str, d: Dict[str, Any]) -> "ModifierDefinition":
        d = as_dict(d)
        aliases = d.get("aliases", [])
        targets = d.get("targets", [])
        return ModifierDefinition(
            canonical_key=canonical_key,
            aliases=tuple(as_str(a) for a in aliases) if isinstance(aliases, list) else (),
            targets=tuple(as_str(t) for t in targets) if isinstance(targets, list) else (),
            effect=ModifierEffect.from_dict(d.get("effect", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aliases": list(self.aliases),
            "targets": list(self.targets),
            "effect": self.effect.to_dict(),
        }


class ModifierCatalog:
    """
    修饰符目录：进程内只读，启动时构建一次，之后不再修改。

    查询都按小写 key 进行；同一个 alias 被多个定义声明时，后声明的生效（会记 warning）。
    """

    def __init__(self, definitions: List[ModifierDefinition]) -> None:
        by_canonical: Dict[str, ModifierDefinition] = {}
        by_alias: Dict[str, ModifierDefinition] = {}
        for d in definitions or []:
            if d.canonical_key in by_canonical:
                log.warning("duplicate modifier definition replaced: %s", d.canonical_key)
            by_canonical[d.canonical_key] = d
            for alias in d.aliases:
                prev = by_alias.get(alias)
                if prev is not None and prev.canonical_key != d.canonical_key:
                    log.warning("modifier alias %r moved from %s to %s", alias, prev.canonical_key, d.canonical_key)
                by_alias[alias] = d

        self._definitions: Tuple[ModifierDefinition, ...] = tuple(by_canonical.values())
        self._by_canonical = by_canonical
        self._by_alias = by_alias

    # ----- lookup -----

    def definitions(self) -> Tuple[ModifierDefinition, ...]:
        return self._definitions

    def resolve(self, token: Optional[str]) -> Optional[ModifierDefinition]:
        """
        按 alias 查找（文本里出现的写法）。
        """
        key = normalize_key(token)
        if key is None:
            return None
        return self._by_alias.get(key)

    def definition_for_key(self, key: Optional[str]) -> Optional[ModifierDefinition]:
        """
        按 canonical key 查找（TokenAlternative.modifiers 里保存的写法）。
        """
        k = normalize_key(key)
        if k is None:
            return None
        return self._by_canonical.get(k)

    def is_modifier(self, token: Optional[str]) -> bool:
        return self.resolve(token) is not None

    def canonical_key(self, token: Optional[str]) -> Optional[str]:
        d = self.resolve(token)
        return d.canonical_key if d is not None else None

    def definitions_for_target(self, category: Optional[str]) -> Tuple[ModifierDefinition, ...]:
        """
        能作用于 category 的所有修饰符，按 canonical key 排序；未知/空白 -> 空。
        """
        if normalize_key(category) is None:
            return ()
        out = [d for d in self._definitions if d.accepts_target(category)]
        out.sort(key=lambda d: d.canonical_key)
        return tuple(out)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.is_modifier(token)

    def __len__(self) -> int:
        return len(self._definitions)

    # ----- serialization -----

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "ModifierCatalog":
        """
        {"gmaul": {"aliases": [...], "targets": [...], "effect": {...}}, ...}
        """
        defs: List[ModifierDefinition] = []
        for key, raw in as_dict(d).items():
            if normalize_key(key) is None:
                log.warning("modifier entry without key ignored")
                continue
            defs.append(ModifierDefinition.from_dict(key, raw))
        return ModifierCatalog(defs)

    def to_dict(self) -> Dict[str, Any]:
        return {d.canonical_key: d.to_dict() for d in self._definitions}


DEFAULT_CATALOG = ModifierCatalog(
    [
        ModifierDefinition(
            canonical_key="gmaul",
            aliases=("gmaul",),
            targets=("spec", "eofspec"),
            effect=ModifierEffect(triggers_gcd=False),
        ),
        ModifierDefinition(
            canonical_key="armadylbattlestaff",
            aliases=("armadylbattlestaff", "armabattlestaff"),
            targets=("spec", "eofspec"),
            effect=ModifierEffect(cast_duration=5),
        ),
    ]
)
