from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class RotationError(Exception):
    """
    本包所有可预期错误的基类（调用方可以只 catch 这一个）。
    """


@dataclass
class ParseError(RotationError):
    """
    循环文本无法解析：
    - code    : 机器可读错误码（如 "parse.group.unterminated"）
    - message : 人类可读简述
    - position: 出错 token 的下标（词法阶段则为字符下标），未知为 None

    畸形的循环不能安全执行，因此永远抛给调用方，不做局部恢复。
    """
    code: str
    message: str
    position: Optional[int] = None

    def __str__(self) -> str:
        if self.position is None:
            return f"{self.message} (code={self.code})"
        return f"{self.message} (code={self.code}, pos={self.position})"


class UnknownAbilityError(RotationError, KeyError):
    """
    解算时技能库里查不到该 ability key。
    """

    def __init__(self, ability_key: str) -> None:
        super().__init__(ability_key)
        self.ability_key = ability_key

    def __str__(self) -> str:
        return f"unknown ability: {self.ability_key!r}"
