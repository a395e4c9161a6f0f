from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

from core.models.common import (
    as_bool,
    as_dict,
    as_int,
    as_opt_float,
    as_opt_int,
    as_opt_str,
    clamp_int,
)


# 与 cast_duration / cooldown 的存盘格式保持一致（原数据是 short）
MAX_TICKS = 32767


@dataclass(frozen=True)
class AbilityData:
    """
    技能库中单个技能的基础数据（由外部配置子系统持久化，本包只读）：

    - triggers_gcd : 是否触发公共冷却（默认 True）
    - cast_duration: 读条/引导时长（tick）
    - cooldown     : 技能自身冷却（tick）

    其余字段（common_name/type/level/detection_threshold/mask）是描述性数据，
    计时不使用，但 EffectiveAbilityConfig 会一并带出，方便调用方展示。
    """
    triggers_gcd: bool = True
    cast_duration: int = 0
    cooldown: int = 0
    common_name: Optional[str] = None
    type: Optional[str] = None
    level: Optional[int] = None
    detection_threshold: Optional[float] = None
    mask: Optional[str] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AbilityData":
        d = as_dict(d)
        level = as_opt_int(d.get("level", None))
        return AbilityData(
            triggers_gcd=as_bool(d.get("triggers_gcd", True), True),
            cast_duration=clamp_int(as_int(d.get("cast_duration", 0), 0), 0, MAX_TICKS),
            cooldown=clamp_int(as_int(d.get("cooldown", 0), 0), 0, MAX_TICKS),
            common_name=as_opt_str(d.get("common_name", None)),
            type=as_opt_str(d.get("type", None)),
            level=max(0, level) if level is not None else None,
            detection_threshold=as_opt_float(d.get("detection_threshold", None)),
            mask=as_opt_str(d.get("mask", None)),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "triggers_gcd": bool(self.triggers_gcd),
            "cast_duration": int(self.cast_duration),
            "cooldown": int(self.cooldown),
        }
        if self.common_name is not None:
            out["common_name"] = self.common_name
        if self.type is not None:
            out["type"] = self.type
        if self.level is not None:
            out["level"] = int(self.level)
        if self.detection_threshold is not None:
            out["detection_threshold"] = float(self.detection_threshold)
        if self.mask is not None:
            out["mask"] = self.mask
        return out


class AbilityLookup(Protocol):
    """
    解析器/计时模型对技能库的唯一依赖：按 key 查基础数据，查不到返回 None。
    """

    def lookup(self, key: str) -> Optional[AbilityData]:
        ...


@dataclass
class AbilityDatabase:
    """
    技能库（abilities.json 的内存形态）：ability key -> AbilityData。

    归外部配置子系统所有；解析/解算期间只读。需要修改时由调用方
    换一个新的实例（copy-on-write），而不是在解算进行中原地修改。
    """
    abilities: Dict[str, AbilityData] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AbilityDatabase":
        d = as_dict(d)
        abilities: Dict[str, AbilityData] = {}
        for key, raw in d.items():
            k = (key or "").strip() if isinstance(key, str) else ""
            if not k:
                continue
            abilities[k] = AbilityData.from_dict(raw)
        return AbilityDatabase(abilities=abilities)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v.to_dict() for k, v in self.abilities.items()}

    def lookup(self, key: str) -> Optional[AbilityData]:
        if not key:
            return None
        return self.abilities.get(key)

    def with_ability(self, key: str, data: AbilityData) -> "AbilityDatabase":
        """
        返回包含该技能的新库（原实例不变）。
        """
        merged = dict(self.abilities)
        merged[key] = data
        return AbilityDatabase(abilities=merged)

    def keys(self) -> Iterator[str]:
        return iter(self.abilities.keys())

    def __contains__(self, key: object) -> bool:
        return key in self.abilities

    def __len__(self) -> int:
        return len(self.abilities)
