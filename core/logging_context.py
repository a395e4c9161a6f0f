# core/logging_context.py
from __future__ import annotations

from contextvars import ContextVar
from contextlib import contextmanager
from uuid import uuid4

corr_id_var: ContextVar[str] = ContextVar("corr_id", default="-")
rotation_var: ContextVar[str] = ContextVar("rotation", default="-")
action_var: ContextVar[str] = ContextVar("action", default="-")

def new_corr_id() -> str:
    return uuid4().hex[:12]

def rotation_tag(text: str | None, *, limit: int = 40) -> str:
    """
    把循环文本压成日志里的一行短标签：空白折叠成单个空格，超长截断加 "…"。
    """
    flat = " ".join((text or "").split())
    if not flat:
        return "-"
    if len(flat) <= limit:
        return flat
    return flat[: max(1, limit - 1)] + "…"

@contextmanager
def log_context(*, corr_id: str | None = None, rotation: str | None = None, action: str | None = None):
    """
    在当前上下文里临时设置日志字段（corr_id / rotation / action），退出时按相反顺序还原。
    """
    tokens = []
    try:
        if corr_id is not None:
            tokens.append((corr_id_var, corr_id_var.set(corr_id)))
        if rotation is not None:
            tokens.append((rotation_var, rotation_var.set(rotation)))
        if action is not None:
            tokens.append((action_var, action_var.set(action)))
        yield
    finally:
        for var, tok in reversed(tokens):
            var.reset(tok)
