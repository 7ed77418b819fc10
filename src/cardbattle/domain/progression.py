"""Experience, leveling and base-stat rules for characters."""

from __future__ import annotations

from .enums import CharacterClass
from .errors import UnknownCharacterClass
from .rules_config import DEFAULT_RULES, RulesConfig


def required_exp(level: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Return the cumulative experience a character needs to hold ``level``."""

    if level < 0:
        raise ValueError("level must be non-negative")
    return level * rules.progression.exp_per_level


def apply_leveling(level: int, exp: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Return the highest level whose requirement ``exp`` meets.

    Equivalent to stepping up one level at a time while ``exp`` covers the
    next level's requirement, but constant time in ``exp``.  The returned
    level is never lower than the input level.
    """

    if level < 0 or exp < 0:
        raise ValueError("level and exp must be non-negative")
    return max(level, exp // rules.progression.exp_per_level)


def _lookup_class(value: int) -> CharacterClass | None:
    try:
        return CharacterClass(value)
    except ValueError:
        return None


def base_health(character_class: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    """Base health for a class; unknown classes raise ``UnknownCharacterClass``."""

    cls = _lookup_class(character_class)
    if cls is None or cls not in rules.base_stats.health:
        raise UnknownCharacterClass(f"Unknown character class {character_class}")
    return rules.base_stats.health[cls]


def base_mana(character_class: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    cls = _lookup_class(character_class)
    return rules.base_stats.mana.get(cls, rules.base_stats.mana_fallback)


def base_attack(character_class: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    cls = _lookup_class(character_class)
    return rules.base_stats.attack.get(cls, rules.base_stats.attack_fallback)


def base_defense(character_class: int, rules: RulesConfig = DEFAULT_RULES) -> int:
    cls = _lookup_class(character_class)
    return rules.base_stats.defense.get(cls, rules.base_stats.defense_fallback)
