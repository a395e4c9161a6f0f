from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, List, Literal, Optional, Tuple

from rune_sequence.errors import ParseError

log = logging.getLogger(__name__)


TokenKind = Literal["word", "arrow", "plus", "slash", "lparen", "rparen", "tooltip"]

ARROW = "→"
ASCII_ARROW = "->"

_WORD_PUNCT = "_-'."
_STRUCTURAL = (ARROW, ASCII_ARROW, "+", "/")


@dataclass(frozen=True)
class Token:
    """
    词法单元：
    - kind    : 见 TokenKind
    - text    : word 为 ability key（不含标签后缀），tooltip 为已反转义的正文
    - pos     : 在表达式里的字符下标
    - label   : word 的 `[*N]` 标签
    - implicit: arrow 是否由换行/插入产生（不是用户写出的）
    """
    kind: TokenKind
    text: str
    pos: int
    label: Optional[str] = None
    implicit: bool = False

    def is_operand_start(self) -> bool:
        return self.kind in ("word", "lparen", "tooltip")


def is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in _WORD_PUNCT


def tokenize(expression: str, *, ability_names: Optional[AbstractSet[str]] = None) -> List[Token]:
    """
    表达式 -> token 列表（不含设置行，见 settings.split_rotation）。

    额外做两件事：
    - 换行两侧都是操作数时变成隐式 `→`，贴着运算符时只是空白
    - `<ability> spec` 在 `spec` 前补一个 `+`
    """
    names = {n.lower() for n in (ability_names or ())}
    raw = _scan(expression or "", names)
    return _insert_spec_plus(_resolve_newlines(raw))


# ----------- scanning -----------

def _scan(text: str, names: AbstractSet[str]) -> List[Token]:
    out: List[Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if ch == "\n":
            out.append(Token("arrow", "\n", i, implicit=True))
            i += 1
            continue
        if ch.isspace():
            i += 1
            continue

        if ch == ARROW:
            out.append(Token("arrow", ARROW, i))
            i += 1
            continue
        if text.startswith(ASCII_ARROW, i):
            out.append(Token("arrow", ARROW, i))
            i += 2
            continue
        if ch == "+":
            out.append(Token("plus", "+", i))
            i += 1
            continue
        if ch == "/":
            out.append(Token("slash", "/", i))
            i += 1
            continue
        if ch == ")":
            out.append(Token("rparen", ")", i))
            i += 1
            continue

        if ch == "(":
            tooltip = _try_tooltip(text, i, names)
            if tooltip is not None:
                body, end = tooltip
                out.append(Token("tooltip", body, i))
                i = end
                continue
            out.append(Token("lparen", "(", i))
            i += 1
            continue

        if is_word_char(ch):
            token, i = _scan_word(text, i)
            out.append(token)
            continue

        raise ParseError("parse.operator.unknown", f"unknown operator {ch!r}", i)

    return out


def _scan_word(text: str, start: int) -> Tuple[Token, int]:
    i = start
    n = len(text)
    while i < n and is_word_char(text[i]):
        if text.startswith(ASCII_ARROW, i):
            break
        i += 1
    word = text[start:i]

    label: Optional[str] = None
    if i < n and text[i] == "[":
        close = text.find("]", i)
        inner = text[i + 1:close] if close >= 0 else ""
        if close < 0 or not inner.startswith("*") or not inner[1:].isdigit():
            raise ParseError("parse.label.malformed", f"malformed instance label after {word!r}", i)
        label = inner[1:]
        i = close + 1

    return Token("word", word, start, label=label), i


def _try_tooltip(text: str, start: int, names: AbstractSet[str]) -> Optional[Tuple[str, int]]:
    """
    判断 text[start] 处的 `(` 是否开启一个 tooltip；是则返回 (正文, 结束下标)，否则 None。
    """
    body: List[str] = []
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n and text[i + 1] in "()":
            body.append(text[i + 1])
            i += 2
            continue
        if ch == "(" or ch == "\n":
            return None
        if ch == ")":
            break
        body.append(ch)
        i += 1
    else:
        return None

    content = "".join(body).strip()
    if not content:
        return None
    if any(op in content for op in _STRUCTURAL):
        return None
    if content.lower() in names:
        return None
    if not (_touches_word_before(text, start) or _touches_word_after(text, i + 1)):
        return None
    return content, i + 1


def _touches_word_before(text: str, start: int) -> bool:
    j = start - 1
    while j >= 0 and text[j] in " \t":
        j -= 1
    if j < 0:
        return False
    return is_word_char(text[j]) or text[j] in ")]"


def _touches_word_after(text: str, end: int) -> bool:
    j = end
    while j < len(text) and text[j] in " \t":
        j += 1
    if j >= len(text):
        return False
    return is_word_char(text[j]) and not text.startswith(ASCII_ARROW, j)


# ----------- post passes -----------

def _resolve_newlines(tokens: List[Token]) -> List[Token]:
    out: List[Token] = []
    for idx, tok in enumerate(tokens):
        if not (tok.kind == "arrow" and tok.text == "\n"):
            out.append(tok)
            continue
        prev = out[-1] if out else None
        nxt = _next_non_newline(tokens, idx + 1)
        if prev is None or nxt is None:
            continue
        if prev.kind in ("word", "rparen", "tooltip") and nxt.is_operand_start():
            out.append(Token("arrow", ARROW, tok.pos, implicit=True))
    return out


def _next_non_newline(tokens: List[Token], start: int) -> Optional[Token]:
    for tok in tokens[start:]:
        if tok.kind == "arrow" and tok.text == "\n":
            continue
        return tok
    return None


def _insert_spec_plus(tokens: List[Token]) -> List[Token]:
    out: List[Token] = []
    for tok in tokens:
        if (
            tok.kind == "word"
            and tok.text.lower() == "spec"
            and out
            and out[-1].kind in ("word", "rparen", "tooltip")
        ):
            out.append(Token("plus", "+", tok.pos, implicit=True))
        out.append(tok)
    return out
