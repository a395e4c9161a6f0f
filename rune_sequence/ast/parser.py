from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, List, Mapping, Optional

from core.models.common import as_dict, as_str
from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.core.modifiers.catalog import DEFAULT_CATALOG, ModifierCatalog
from rune_sequence.core.modifiers.engine import match_fusion
from rune_sequence.errors import ParseError

from .nodes import (
    Alternative,
    GroupAlternative,
    MarkerAlternative,
    SequenceDefinition,
    Step,
    Term,
    TokenAlternative,
)
from .settings import split_rotation
from .tokenizer import Token, tokenize

log = logging.getLogger(__name__)


ADJACENT_WORD_MODES = ("steps", "error", "join")


@dataclass(frozen=True)
class ParserConfig:
    """
    解析行为配置：

    adjacent_words：两个技能之间既无运算符也不构成修饰关系时怎么处理
    - "steps": 视为隐式 `→`，形成相继的单 term step（默认）
    - "error": 报 "missing operator"
    - "join" : 拼成一个含空格的 ability key（如 "death skulls"）
    """
    adjacent_words: str = "steps"

    def __post_init__(self) -> None:
        if self.adjacent_words not in ADJACENT_WORD_MODES:
            raise ValueError(f"adjacent_words must be one of {ADJACENT_WORD_MODES}, got {self.adjacent_words!r}")

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ParserConfig":
        d = as_dict(d)
        mode = as_str(d.get("adjacent_words", "steps"), "steps").strip().lower() or "steps"
        if mode not in ADJACENT_WORD_MODES:
            log.warning("unknown adjacent_words mode %r, falling back to 'steps'", mode)
            mode = "steps"
        return ParserConfig(adjacent_words=mode)

    def to_dict(self) -> Dict[str, Any]:
        return {"adjacent_words": self.adjacent_words}


DEFAULT_PARSER_CONFIG = ParserConfig()


def parse(
    text: Optional[str],
    *,
    catalog: ModifierCatalog = DEFAULT_CATALOG,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    ability_names: Optional[AbstractSet[str]] = None,
) -> SequenceDefinition:
    """
    循环文本 -> SequenceDefinition。

    空文本 / 只有空白 / 只有设置行 -> 0 个 step，不报错；
    其余畸形文本一律抛 ParseError。
    """
    parsed = split_rotation(text)
    if not parsed.expression.strip():
        return SequenceDefinition(steps=(), ability_overrides=parsed.per_ability)

    tokens = tokenize(parsed.expression, ability_names=ability_names)
    parser = _Parser(tokens, catalog=catalog, config=config, per_instance=parsed.per_instance)
    steps = parser.parse_top()
    log.debug("parsed rotation: %d steps, %d tokens", len(steps), len(tokens))
    return SequenceDefinition(steps=tuple(steps), ability_overrides=parsed.per_ability)


class _Parser:
    """
    单遍、一个 token 前瞻的递归下降：

        Expression  := Step (('→' | 隐式边界) Step)*
        Step        := Term ('+' Term)*
        Term        := Alternative ('/' Alternative)*
        Alternative := Tooltip* (Ability | '(' Expression ')') Tooltip*
    """

    def __init__(
        self,
        tokens: List[Token],
        *,
        catalog: ModifierCatalog,
        config: ParserConfig,
        per_instance: Mapping[str, AbilityOverrides],
    ) -> None:
        self.tokens = tokens
        self.i = 0
        self.catalog = catalog
        self.config = config
        self.per_instance = per_instance

    # ----- cursor -----

    def peek(self, offset: int = 0) -> Optional[Token]:
        j = self.i + offset
        return self.tokens[j] if 0 <= j < len(self.tokens) else None

    def at(self, kind: str) -> bool:
        tok = self.peek()
        return tok is not None and tok.kind == kind

    def advance(self) -> Token:
        tok = self.tokens[self.i]
        self.i += 1
        return tok

    def error(self, code: str, message: str) -> ParseError:
        return ParseError(code, message, self.i)

    def expect_operand(self, after: str) -> None:
        tok = self.peek()
        if tok is None or not tok.is_operand_start():
            raise self.error("parse.token.empty", f"expected an ability after {after!r}")

    # ----- grammar -----

    def parse_top(self) -> List[Step]:
        steps = self.parse_expression()
        tok = self.peek()
        if tok is not None:
            if tok.kind == "rparen":
                raise self.error("parse.group.unexpected_close", "unexpected ')'")
            raise self.error("parse.token.unexpected", f"unexpected token {tok.text!r}")
        return steps

    def parse_expression(self) -> List[Step]:
        steps: List[Step] = []
        while True:
            steps.append(self.parse_step())
            tok = self.peek()
            if tok is None or tok.kind == "rparen":
                break
            if tok.kind == "arrow":
                self.advance()
                self.expect_operand("→")
                continue
            if tok.is_operand_start():
                # 相邻且无运算符（join 模式在 parse_ability 里已经吞掉）
                if self.config.adjacent_words == "error":
                    raise self.error("parse.operator.missing", f"missing operator before {tok.text!r}")
                continue
            raise self.error("parse.token.empty", f"expected an ability before {tok.text!r}")
        return steps

    def parse_step(self) -> Step:
        terms: List[Term] = [self.parse_term()]
        while self.at("plus"):
            self.advance()
            self.expect_operand("+")
            terms.append(self.parse_term())

        if len(terms) >= 3:
            for t in terms[1:-1]:
                if len(t.choices()) > 1:
                    raise self.error(
                        "parse.ambiguous",
                        "ambiguous '/' between '+' terms, use parentheses",
                    )
        return Step(terms=tuple(terms))

    def parse_term(self) -> Term:
        alts: List[Alternative] = self.parse_alternative(first=True)
        while self.at("slash"):
            self.advance()
            self.expect_operand("/")
            alts.extend(self.parse_alternative(first=False))
        return Term(alternatives=tuple(alts))

    def parse_alternative(self, *, first: bool) -> List[Alternative]:
        out: List[Alternative] = []
        while self.at("tooltip"):
            out.append(MarkerAlternative(text=self.advance().text))

        tok = self.peek()
        if tok is None or tok.kind not in ("word", "lparen"):
            raise self.error("parse.token.empty", "expected an ability")

        if tok.kind == "lparen":
            out.append(self.parse_group())
        else:
            out.append(self.parse_ability(first=first))

        while self.at("tooltip"):
            out.append(MarkerAlternative(text=self.advance().text))
        return out

    def parse_group(self) -> GroupAlternative:
        self.advance()
        if self.at("rparen"):
            raise self.error("parse.token.empty", "empty group '()'")
        steps = self.parse_expression()
        if not self.at("rparen"):
            raise self.error("parse.group.unterminated", "unterminated group, missing ')'")
        self.advance()
        return GroupAlternative(definition=SequenceDefinition(steps=tuple(steps)))

    def parse_ability(self, *, first: bool) -> TokenAlternative:
        if first:
            fused = match_fusion(self.tokens, self.i, self.catalog)
            if fused is not None:
                self.i = fused.next_index
                target = fused.target
                if target.label is not None and target.label in self.per_instance:
                    log.warning(
                        "settings for label *%s dropped: %s carries modifiers %s",
                        target.label, target.text, ",".join(fused.modifiers),
                    )
                return TokenAlternative(
                    key=target.text,
                    modifiers=fused.modifiers,
                    overrides=None,
                    instance_label=target.label,
                )

        tok = self.advance()
        key = tok.text
        label = tok.label
        if self.config.adjacent_words == "join":
            while label is None and self.at("word"):
                nxt = self.advance()
                key = f"{key} {nxt.text}"
                label = nxt.label

        overrides = self.per_instance.get(label) if label is not None else None
        return TokenAlternative(key=key, overrides=overrides, instance_label=label)

