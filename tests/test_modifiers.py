# tests/test_modifiers.py
from __future__ import annotations

import pytest

from rune_sequence.ast import TokenAlternative, parse
from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.core.modifiers import (
    DEFAULT_CATALOG,
    ModifierCatalog,
    ModifierDefinition,
    ModifierEffect,
    derive_overrides,
    list_definitions_for_target,
)


def only_alt(text: str, **kwargs) -> TokenAlternative:
    d = parse(text, **kwargs)
    assert len(d.steps) == 1
    assert len(d.steps[0].terms) == 1
    alts = d.steps[0].terms[0].alternatives
    assert len(alts) == 1
    return alts[0]


def make_catalog() -> ModifierCatalog:
    return ModifierCatalog.from_dict(
        {
            "zgs": {"aliases": ["zamorakgodsword"], "targets": ["*spec"], "effect": {"cooldown": 10}},
            "fast": {"targets": ["spec"], "effect": {"cast_duration": 2}},
            "slow": {"targets": ["spec"], "effect": {"cast_duration": 7}},
        }
    )


# ---------- 融合 ----------

def test_gmaul_fuses_with_adjacent_target():
    alt = only_alt("gmaul eofspec")
    assert alt.key == "eofspec"
    assert alt.modifiers == ("gmaul",)
    assert alt.overrides is None


def test_staff_fuses_across_spec_rewrite():
    alt = only_alt("armadylbattlestaff spec")
    assert alt.key == "spec"
    assert alt.modifiers == ("armadylbattlestaff",)


def test_fusion_across_explicit_plus_and_aliases():
    alt = only_alt("armabattlestaff + eofspec")
    assert alt.key == "eofspec"
    assert alt.modifiers == ("armadylbattlestaff",)


def test_fusion_is_case_insensitive():
    alt = only_alt("GMaul EOFSPEC")
    assert alt.key == "EOFSPEC"
    assert alt.modifiers == ("gmaul",)


def test_modifier_chain_keeps_written_order():
    alt = only_alt("gmaul armadylbattlestaff spec")
    assert alt.key == "spec"
    assert alt.modifiers == ("gmaul", "armadylbattlestaff")


def test_modifier_without_target_is_an_ordinary_token():
    d = parse("gmaul cane")
    assert [t.key for t in d.iter_tokens()] == ["gmaul", "cane"]
    assert all(t.modifiers == () for t in d.iter_tokens())

    alt = only_alt("gmaul")
    assert alt.key == "gmaul"
    assert alt.modifiers == ()


def test_no_fusion_when_target_has_fallback():
    d = parse("gmaul eofspec / cane")
    assert len(d.steps) == 2
    assert d.steps[0].terms[0].alternatives[0].key == "gmaul"
    assert [a.key for a in d.steps[1].terms[0].choices()] == ["eofspec", "cane"]


def test_no_fusion_when_tooltip_sits_between_target_and_fallback():
    d = parse("gmaul eofspec (note) / cane")
    assert all(t.modifiers == () for t in d.iter_tokens())
    assert [a.key for a in d.steps[-1].terms[0].choices()] == ["eofspec", "cane"]

    fused = parse("gmaul eofspec (note) → cane")
    assert fused.steps[0].terms[0].choices()[0].modifiers == ("gmaul",)


def test_no_fusion_when_modifier_is_not_first_alternative():
    d = parse("cane / gmaul eofspec")
    assert [a.key for a in d.steps[0].terms[0].choices()] == ["cane", "gmaul"]
    assert d.steps[1].terms[0].alternatives[0].modifiers == ()


def test_fused_labelled_target_keeps_label_but_drops_settings():
    alt = only_alt("gmaul eofspec[*2]\n#*2 cooldown=9")
    assert alt.key == "eofspec"
    assert alt.instance_label == "2"
    assert alt.modifiers == ("gmaul",)
    assert alt.overrides is None


def test_fusion_inside_larger_step():
    d = parse("cane + gmaul + eofspec")
    terms = d.steps[0].terms
    assert len(terms) == 2
    fused = terms[1].alternatives[0]
    assert fused.key == "eofspec"
    assert fused.modifiers == ("gmaul",)


def test_custom_catalog_with_pattern_targets():
    cat = make_catalog()
    alt = only_alt("zamorakgodsword eofspec", catalog=cat)
    assert alt.key == "eofspec"
    assert alt.modifiers == ("zgs",)

    # 默认目录里的 gmaul 在自定义目录里只是普通技能
    d = parse("gmaul eofspec", catalog=cat)
    assert len(d.steps) == 2


def test_modifiers_and_overrides_are_mutually_exclusive():
    with pytest.raises(ValueError):
        TokenAlternative(key="spec", modifiers=("gmaul",), overrides=AbilityOverrides(cooldown=1))
    with pytest.raises(ValueError):
        TokenAlternative(key="  ")


# ---------- 目录查询 ----------

def test_list_definitions_for_target_sorted():
    defs = list_definitions_for_target("spec")
    assert [d.canonical_key for d in defs] == ["armadylbattlestaff", "gmaul"]
    assert [d.canonical_key for d in list_definitions_for_target("EOFSPEC")] == ["armadylbattlestaff", "gmaul"]


@pytest.mark.parametrize("category", ["cane", "", "   ", None])
def test_list_definitions_for_unknown_target_is_empty(category):
    assert list_definitions_for_target(category) == ()


def test_catalog_lookup():
    assert DEFAULT_CATALOG.is_modifier("ArmaBattleStaff")
    assert DEFAULT_CATALOG.canonical_key("armabattlestaff") == "armadylbattlestaff"
    assert DEFAULT_CATALOG.definition_for_key("gmaul").effect == ModifierEffect(triggers_gcd=False)
    assert DEFAULT_CATALOG.definition_for_key("armabattlestaff") is None
    assert "gmaul" in DEFAULT_CATALOG
    assert "cane" not in DEFAULT_CATALOG
    assert len(DEFAULT_CATALOG) == 2


def test_catalog_dict_roundtrip_keeps_definitions():
    cat = make_catalog()
    again = ModifierCatalog.from_dict(cat.to_dict())
    assert again.definitions() == cat.definitions()


def test_definition_normalizes_keys():
    d = ModifierDefinition(canonical_key=" ZGS ", aliases=("Zamorak",), targets=("SPEC",))
    assert d.canonical_key == "zgs"
    assert d.aliases == ("zgs", "zamorak")
    assert d.accepts_target("Spec")
    assert not d.accepts_target("eofspec")
    with pytest.raises(ValueError):
        ModifierDefinition(canonical_key="")


# ---------- 效果叠加 ----------

def test_derive_overrides_is_last_write_wins():
    cat = make_catalog()
    assert derive_overrides("spec", ["fast", "slow"], cat) == AbilityOverrides(cast_duration=7)
    assert derive_overrides("spec", ["slow", "fast"], cat) == AbilityOverrides(cast_duration=2)


def test_derive_overrides_skips_unknown_and_non_matching():
    assert derive_overrides("cane", ["gmaul"]) is None
    assert derive_overrides("spec", ["nope"]) is None
    assert derive_overrides("spec", ["gmaul", "nope"]) == AbilityOverrides(triggers_gcd=False)
