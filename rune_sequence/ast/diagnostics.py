from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Literal, Optional


DiagnosticLevel = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class Diagnostic:
    """
    编译诊断：
    - code   : 机器可读错误码（如 "ability.unknown"）
    - level  : error/warning/info
    - path   : 指向 SequenceDefinition 的路径，如 "$.steps[0].terms[1].alternatives[0]"
    - message: 人类可读简述
    - detail : 出问题的 key / label / 字符位置
    """
    code: str
    level: DiagnosticLevel
    path: str
    message: str
    detail: str = ""

    def is_error(self) -> bool:
        return self.level == "error"

    def format_line(self) -> str:
        s = f"[{self.level}] {self.code} {self.path}: {self.message}"
        return f"{s} ({self.detail})" if self.detail else s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "level": self.level,
            "path": self.path,
            "message": self.message,
            "detail": self.detail,
        }


def pjoin(base: str, frag: str) -> str:
    # 空 base 视为根 "$"；frag 自带 "." 或 "[" 前缀
    return (base or "$") + (frag or "")


def alternative_path(base: str, step: int, term: int, alternative: Optional[int] = None) -> str:
    p = pjoin(base, f".steps[{step}].terms[{term}]")
    if alternative is None:
        return p
    return pjoin(p, f".alternatives[{alternative}]")


def has_errors(diags: Iterable[Diagnostic]) -> bool:
    return any(d.is_error() for d in diags or ())


def _diag(level: DiagnosticLevel, code: str, path: str, message: str, detail: str) -> Diagnostic:
    return Diagnostic(code=code, level=level, path=path or "$", message=message, detail=detail)


def err(code: str, path: str, message: str, detail: str = "") -> Diagnostic:
    return _diag("error", code, path, message, detail)


def warn(code: str, path: str, message: str, detail: str = "") -> Diagnostic:
    return _diag("warning", code, path, message, detail)


def info(code: str, path: str, message: str, detail: str = "") -> Diagnostic:
    return _diag("info", code, path, message, detail)
