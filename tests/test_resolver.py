# tests/test_resolver.py
from __future__ import annotations

import math

import pytest

from core.models.ability import AbilityData, AbilityDatabase
from rune_sequence.ast import MarkerAlternative, TokenAlternative, parse
from rune_sequence.core.models.overrides import AbilityOverrides
from rune_sequence.core.modifiers import ModifierCatalog
from rune_sequence.core.resolver import resolve, resolve_step
from rune_sequence.errors import UnknownAbilityError


def first_alt(text: str):
    return parse(text).steps[0].terms[0].alternatives[0]


class CountingLookup:
    """
    只实现 lookup 的技能库替身，顺便记录查询次数。
    """

    def __init__(self, abilities):
        self.abilities = abilities
        self.calls = 0

    def lookup(self, key):
        self.calls += 1
        return self.abilities.get(key)


def test_no_modifiers_equals_base(ability_db):
    for key in ability_db.keys():
        cfg = resolve(TokenAlternative(key=key), ability_db)
        base = ability_db.lookup(key)
        assert cfg.ability_key == key
        assert cfg.triggers_gcd == base.triggers_gcd
        assert cfg.cast_duration == base.cast_duration
        assert cfg.cooldown == base.cooldown
        assert cfg.detection_threshold == base.detection_threshold


def test_gmaul_disables_gcd(ability_db):
    alt = first_alt("gmaul eofspec")
    cfg = resolve(alt, ability_db)
    assert cfg.triggers_gcd is False
    assert cfg.cast_duration == 0
    assert cfg.cooldown == 0


def test_staff_sets_cast_duration(ability_db):
    alt = first_alt("armadylbattlestaff spec")
    cfg = resolve(alt, ability_db)
    assert cfg.cast_duration == 5
    assert cfg.triggers_gcd is True


def test_modifier_order_is_last_write_wins(ability_db):
    cat = ModifierCatalog.from_dict(
        {
            "fast": {"targets": ["spec"], "effect": {"cast_duration": 2}},
            "slow": {"targets": ["spec"], "effect": {"cast_duration": 7}},
        }
    )
    a = TokenAlternative(key="spec", modifiers=("fast", "slow"))
    b = TokenAlternative(key="spec", modifiers=("slow", "fast"))
    assert resolve(a, ability_db, catalog=cat).cast_duration == 7
    assert resolve(b, ability_db, catalog=cat).cast_duration == 2


def test_resolve_is_idempotent_and_does_not_mutate(ability_db):
    before = ability_db.to_dict()
    alt = TokenAlternative(key="spec", modifiers=("gmaul", "armadylbattlestaff"))
    first = resolve(alt, ability_db)
    second = resolve(alt, ability_db)
    assert first == second
    assert ability_db.to_dict() == before
    assert ability_db.lookup("spec") == AbilityData(triggers_gcd=True, cast_duration=0, cooldown=0)


def test_unknown_ability_raises(ability_db):
    with pytest.raises(UnknownAbilityError) as ei:
        resolve(TokenAlternative(key="nope"), ability_db)
    assert ei.value.ability_key == "nope"
    assert isinstance(ei.value, KeyError)
    assert "nope" in str(ei.value)


def test_label_is_not_part_of_the_key(ability_db):
    alt = first_alt("cane[*4]")
    assert resolve(alt, ability_db).cooldown == 100


def test_non_token_alternative_is_a_type_error(ability_db):
    with pytest.raises(TypeError):
        resolve(MarkerAlternative(text="note"), ability_db)


def test_non_matching_modifier_is_skipped(ability_db):
    cfg = resolve(TokenAlternative(key="cane", modifiers=("gmaul",)), ability_db)
    assert cfg.triggers_gcd is True


def test_override_precedence(ability_db):
    per_ability = {"cane": AbilityOverrides(cooldown=50, mask="m1")}

    cfg = resolve(TokenAlternative(key="cane"), ability_db, ability_overrides=per_ability)
    assert cfg.cooldown == 50
    assert cfg.mask == "m1"

    inst = TokenAlternative(key="cane", overrides=AbilityOverrides(cooldown=5), instance_label="1")
    cfg = resolve(inst, ability_db, ability_overrides=per_ability)
    assert cfg.cooldown == 5
    assert cfg.mask == "m1"


def test_overrides_from_rotation_text(ability_db):
    d = parse("cane[*1] → tc\n#*1 cooldown=200\n#@tc cast_duration=9")
    cane = d.steps[0].terms[0].alternatives[0]
    tc = d.steps[1].terms[0].alternatives[0]
    assert resolve(cane, ability_db, ability_overrides=d.ability_overrides).cooldown == 200
    assert resolve(tc, ability_db, ability_overrides=d.ability_overrides).cast_duration == 9


def test_values_are_sanitized():
    db = AbilityDatabase(abilities={"x": AbilityData(cast_duration=-5, cooldown=-1, detection_threshold=0.5)})
    cfg = resolve(TokenAlternative(key="x"), db)
    assert cfg.cast_duration == 0
    assert cfg.cooldown == 0

    cfg = resolve(TokenAlternative(key="x", overrides=AbilityOverrides(detection_threshold=2.0, level=-3)), db)
    assert cfg.detection_threshold == 1.0
    assert cfg.level == 0

    cfg = resolve(TokenAlternative(key="x", overrides=AbilityOverrides(detection_threshold=-0.5)), db)
    assert cfg.detection_threshold == 0.0

    cfg = resolve(TokenAlternative(key="x", overrides=AbilityOverrides(detection_threshold=math.nan)), db)
    assert cfg.detection_threshold is None


def test_any_lookup_object_works():
    lookup = CountingLookup({"spec": AbilityData()})
    cfg = resolve(TokenAlternative(key="spec", modifiers=("gmaul",)), lookup)
    assert cfg.triggers_gcd is False
    assert lookup.calls == 1


# ---------- resolve_step ----------

def test_resolve_step_flattens_groups_and_skips_unknown(ability_db):
    step = parse("cane + (eofspec / mystery) + gmaul eofspec (note)").steps[0]
    configs = resolve_step(step, ability_db)
    assert [c.ability_key for c in configs] == ["cane", "eofspec", "eofspec"]
    assert [c.triggers_gcd for c in configs] == [True, True, False]


def test_resolve_step_strict_raises(ability_db):
    step = parse("cane + mystery").steps[0]
    with pytest.raises(UnknownAbilityError):
        resolve_step(step, ability_db, strict=True)
    assert len(resolve_step(step, ability_db)) == 1
