from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple, Union

from rune_sequence.core.models.overrides import AbilityOverrides


# ----------- Alternatives -----------

@dataclass(frozen=True)
class TokenAlternative:
    """
    技能 token：

    - key           : ability key（不含 `[*N]` 标签后缀）
    - modifiers     : 融合进来的修饰符 canonical key，按书写顺序
    - overrides     : 单实例设置覆盖（来自 `#*N` 行）
    - instance_label: `[*N]` 中的 N

    modifiers 与 overrides 互斥：修饰符效果每次解算时现算，绝不写进
    单实例的持久化覆盖里。
    """
    key: str
    modifiers: Tuple[str, ...] = ()
    overrides: Optional[AbilityOverrides] = None
    instance_label: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.key or "").strip():
            raise ValueError("TokenAlternative.key 不能为空")
        object.__setattr__(self, "modifiers", tuple(self.modifiers or ()))
        if self.modifiers and self.overrides is not None:
            raise ValueError("带修饰符的 token 不能同时携带单实例覆盖")

    def is_token(self) -> bool:
        return True


@dataclass(frozen=True)
class MarkerAlternative:
    """
    只用于展示的标注（目前只有 tooltip），不参与解算与计时。
    """
    text: str
    kind: str = "tooltip"

    def is_token(self) -> bool:
        return False


@dataclass(frozen=True)
class GroupAlternative:
    """
    括号分组 `( ... )`：内部是一个完整的子循环。
    """
    definition: "SequenceDefinition"

    def is_token(self) -> bool:
        return False


Alternative = Union[TokenAlternative, MarkerAlternative, GroupAlternative]


# ----------- Structure -----------

@dataclass(frozen=True)
class Term:
    """
    `/` 连接的一组备选：运行时从左到右取第一个可用的。
    """
    alternatives: Tuple[Alternative, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "alternatives", tuple(self.alternatives))

    def choices(self) -> Tuple[Alternative, ...]:
        """
        真正参与选择的备选（跳过 tooltip 等 marker）。
        """
        return tuple(a for a in self.alternatives if not isinstance(a, MarkerAlternative))

    def markers(self) -> Tuple[MarkerAlternative, ...]:
        return tuple(a for a in self.alternatives if isinstance(a, MarkerAlternative))


@dataclass(frozen=True)
class Step:
    """
    `+` 连接的一组 term：一个调度单元，引擎尝试一起执行后才前进。
    """
    terms: Tuple[Term, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))

    def iter_tokens(self) -> Iterator[TokenAlternative]:
        """
        深度优先列出本 step 内所有技能 token（展开分组，跳过 marker）。
        """
        for term in self.terms:
            for alt in term.alternatives:
                yield from _iter_alt_tokens(alt)



@dataclass(frozen=True)
class SequenceDefinition:
    """
    一条完整的循环：按顺序执行的 steps。

    ability_overrides 来自 `#@abilityKey ...` 行（对整条循环中该技能生效）。
    """
    steps: Tuple[Step, ...] = ()
    ability_overrides: Mapping[str, AbilityOverrides] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "ability_overrides", MappingProxyType(dict(self.ability_overrides or {})))

    def __len__(self) -> int:
        return len(self.steps)

    def step(self, index: int) -> Step:
        return self.steps[index]

    def is_empty(self) -> bool:
        return not self.steps

    def iter_tokens(self) -> Iterator[TokenAlternative]:
        for s in self.steps:
            yield from s.iter_tokens()


def _iter_alt_tokens(alt: Alternative) -> Iterator[TokenAlternative]:
    if isinstance(alt, TokenAlternative):
        yield alt
        return
    if isinstance(alt, GroupAlternative):
        yield from alt.definition.iter_tokens()
        return
    if isinstance(alt, MarkerAlternative):
        return
    raise TypeError(f"unknown alternative type: {type(alt).__name__}")
