# tests/test_parser.py
from __future__ import annotations

import pytest

from rune_sequence.ast import (
    GroupAlternative,
    MarkerAlternative,
    ParserConfig,
    TokenAlternative,
    parse,
)
from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.errors import ParseError, RotationError


def only_alt(text: str, **kwargs):
    d = parse(text, **kwargs)
    assert len(d.steps) == 1
    assert len(d.steps[0].terms) == 1
    alts = d.steps[0].terms[0].alternatives
    assert len(alts) == 1
    return alts[0]


def keys_of_term(term):
    return [a.key for a in term.choices()]


# ---------- 基本结构 ----------

def test_empty_text_yields_zero_steps():
    assert len(parse("")) == 0
    assert parse("   \n\t ").is_empty()
    assert parse(None).is_empty()


def test_settings_only_text_yields_zero_steps():
    d = parse("#@cane cooldown=5")
    assert d.is_empty()
    assert d.ability_overrides["cane"] == AbilityOverrides(cooldown=5)


def test_plus_joins_terms_of_one_step():
    d = parse("ability1 + ability2")
    assert len(d.steps) == 1
    terms = d.steps[0].terms
    assert len(terms) == 2
    for term, key in zip(terms, ["ability1", "ability2"]):
        assert len(term.alternatives) == 1
        alt = term.alternatives[0]
        assert isinstance(alt, TokenAlternative)
        assert alt.key == key
        assert alt.modifiers == ()
        assert alt.overrides is None


def test_arrow_and_slash():
    d = parse("Bio spec -> Radiant / Shield spec")
    assert len(d.steps) == 2
    assert [len(s.terms) for s in d.steps] == [2, 2]
    assert keys_of_term(d.steps[0].terms[0]) == ["Bio"]
    assert keys_of_term(d.steps[0].terms[1]) == ["spec"]
    assert keys_of_term(d.steps[1].terms[0]) == ["Radiant", "Shield"]
    assert keys_of_term(d.steps[1].terms[1]) == ["spec"]


def test_unicode_and_ascii_arrows_are_equivalent():
    assert parse("a → b").steps == parse("a -> b").steps
    assert parse("a→b").steps == parse("a->b").steps


def test_spec_suffix_becomes_concurrent_term():
    d = parse("cane spec")
    assert len(d.steps) == 1
    assert keys_of_term(d.steps[0].terms[0]) == ["cane"]
    assert keys_of_term(d.steps[0].terms[1]) == ["spec"]

    # 单独的 spec 仍然是普通 token
    alt = only_alt("spec")
    assert alt.key == "spec"


def test_nested_groups():
    d = parse("(Alpha → Beta + (Gamma / Delta)) + Epsilon")
    assert len(d.steps) == 1
    terms = d.steps[0].terms
    assert len(terms) == 2

    outer = terms[0].alternatives[0]
    assert isinstance(outer, GroupAlternative)
    assert keys_of_term(terms[1]) == ["Epsilon"]

    inner_steps = outer.definition.steps
    assert len(inner_steps) == 2
    assert keys_of_term(inner_steps[0].terms[0]) == ["Alpha"]
    assert keys_of_term(inner_steps[1].terms[0]) == ["Beta"]

    inner_group = inner_steps[1].terms[1].alternatives[0]
    assert isinstance(inner_group, GroupAlternative)
    assert keys_of_term(inner_group.definition.steps[0].terms[0]) == ["Gamma", "Delta"]

    assert [t.key for t in d.iter_tokens()] == ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]


def test_newline_is_implicit_arrow_between_abilities():
    d = parse("a\nb")
    assert len(d.steps) == 2

    d = parse("a +\nb")
    assert len(d.steps) == 1
    assert len(d.steps[0].terms) == 2

    d = parse("a\n/ b")
    assert len(d.steps) == 1
    assert keys_of_term(d.steps[0].terms[0]) == ["a", "b"]


def test_invisible_characters_and_quotes_are_stripped():
    d = parse('"a\u200b + b\u00a0"')
    assert len(d.steps) == 1
    assert [t.key for t in d.iter_tokens()] == ["a", "b"]


def test_parse_is_deterministic():
    text = "gmaul eofspec → (cane / tc) + surge (note)\n#*1 cooldown=3"
    a = parse(text)
    b = parse(text)
    assert a.steps == b.steps
    assert dict(a.ability_overrides) == dict(b.ability_overrides)


# ---------- 相邻 word 策略 ----------

def test_adjacent_words_default_to_successive_steps():
    d = parse("s cane")
    assert len(d.steps) == 2
    assert all(len(s.terms) == 1 for s in d.steps)


def test_adjacent_words_error_mode():
    with pytest.raises(ParseError) as ei:
        parse("s cane", config=ParserConfig(adjacent_words="error"))
    assert ei.value.code == "parse.operator.missing"


def test_adjacent_words_join_mode():
    alt = only_alt("death skulls", config=ParserConfig(adjacent_words="join"))
    assert alt.key == "death skulls"


def test_parser_config_from_dict_falls_back():
    assert ParserConfig.from_dict({"adjacent_words": "JOIN"}).adjacent_words == "join"
    assert ParserConfig.from_dict({"adjacent_words": "nope"}).adjacent_words == "steps"
    assert ParserConfig.from_dict(None).to_dict() == {"adjacent_words": "steps"}
    with pytest.raises(ValueError):
        ParserConfig(adjacent_words="nope")


# ---------- 错误 ----------

@pytest.mark.parametrize(
    "text, code",
    [
        ("(A + B", "parse.group.unterminated"),
        ("A -> -> B", "parse.token.empty"),
        ("(A -> B -> )", "parse.token.empty"),
        ("A +", "parse.token.empty"),
        ("A /", "parse.token.empty"),
        ("→ A", "parse.token.empty"),
        ("()", "parse.token.empty"),
        ("A )", "parse.group.unexpected_close"),
        ("A & B", "parse.operator.unknown"),
        ("(A + B / C + D -> F)", "parse.ambiguous"),
        ("cane[*x]", "parse.label.malformed"),
        ("cane[*1", "parse.label.malformed"),
    ],
)
def test_malformed_text_raises(text, code):
    with pytest.raises(ParseError) as ei:
        parse(text)
    assert ei.value.code == code
    assert isinstance(ei.value, RotationError)
    assert "code=" in str(ei.value)


def test_slash_between_two_terms_is_fine():
    d = parse("A + B / C")
    assert keys_of_term(d.steps[0].terms[1]) == ["B", "C"]


# ---------- 标签与设置行 ----------

def test_instance_label_attaches_overrides_to_that_token_only():
    d = parse("cane[*1] → tc\n#*1 cooldown=200")
    cane = d.steps[0].terms[0].alternatives[0]
    tc = d.steps[1].terms[0].alternatives[0]
    assert cane.key == "cane"
    assert cane.instance_label == "1"
    assert cane.overrides == AbilityOverrides(cooldown=200)
    assert tc.overrides is None
    assert tc.instance_label is None


def test_malformed_settings_lines_attach_nothing():
    d = parse("cane[*1] → tc\n#*1 cooldown=abc\n#*x cooldown=5\n#*1")
    cane = d.steps[0].terms[0].alternatives[0]
    assert cane.instance_label == "1"
    assert cane.overrides is None


def test_per_ability_lines_go_to_definition():
    d = parse("cane → tc\n#@tc triggers_gcd=false\n#@tc cast_duration=3")
    assert d.ability_overrides["tc"] == AbilityOverrides(triggers_gcd=False, cast_duration=3)
    for tok in d.iter_tokens():
        assert tok.overrides is None


# ---------- tooltip ----------

def test_tooltips_do_not_change_structure():
    plain = parse("chaosroar → s cane")
    noted = parse("chaosroar (gfury if not owned) → s cane")
    assert len(noted.steps) == len(plain.steps)
    assert [len(s.terms) for s in noted.steps] == [len(s.terms) for s in plain.steps]

    first = noted.steps[0].terms[0]
    assert [type(a) for a in first.alternatives] == [TokenAlternative, MarkerAlternative]
    assert first.markers()[0].text == "gfury if not owned"
    assert len(first.choices()) == 1
    assert [t.key for t in noted.iter_tokens()] == [t.key for t in plain.iter_tokens()]


def test_tooltip_after_operator_goes_before_next_ability():
    d = parse("a + (careful) b")
    term = d.steps[0].terms[1]
    assert isinstance(term.alternatives[0], MarkerAlternative)
    assert term.alternatives[0].text == "careful"
    assert term.alternatives[1].key == "b"


def test_tooltip_escapes():
    d = parse(r"a (see \(x\) first)")
    marker = d.steps[0].terms[0].markers()[0]
    assert marker.text == "see (x) first"


def test_known_ability_in_parens_is_a_group():
    d = parse("a (tc)", ability_names={"tc"})
    assert len(d.steps) == 2
    assert isinstance(d.steps[1].terms[0].alternatives[0], GroupAlternative)

    d = parse("a (tc)")
    assert len(d.steps) == 1
    assert d.steps[0].terms[0].markers()[0].text == "tc"
