"""Declarative progression and base-stat constants."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import CharacterClass


@dataclass(frozen=True, slots=True)
class ProgressionRules:
    """Experience curve for characters."""

    exp_per_level: int = 100


@dataclass(frozen=True, slots=True)
class BaseStatRules:
    """Per-class base stats.

    Health has no fallback: an unknown class is an error.  The other tables
    answer unknown classes with their ``*_fallback`` value.
    """

    health: dict[CharacterClass, int] = field(
        default_factory=lambda: {
            CharacterClass.WARRIOR: 120,
            CharacterClass.MAGE: 80,
            CharacterClass.ARCHER: 90,
            CharacterClass.ROGUE: 85,
            CharacterClass.PALADIN: 110,
            CharacterClass.NECROMANCER: 75,
        }
    )
    mana: dict[CharacterClass, int] = field(
        default_factory=lambda: {
            CharacterClass.WARRIOR: 30,
            CharacterClass.MAGE: 120,
            CharacterClass.ARCHER: 50,
            CharacterClass.ROGUE: 40,
            CharacterClass.PALADIN: 60,
            CharacterClass.NECROMANCER: 110,
        }
    )
    attack: dict[CharacterClass, int] = field(
        default_factory=lambda: {
            CharacterClass.WARRIOR: 25,
            CharacterClass.MAGE: 30,
            CharacterClass.ARCHER: 28,
            CharacterClass.ROGUE: 32,
            CharacterClass.PALADIN: 20,
            CharacterClass.NECROMANCER: 27,
        }
    )
    defense: dict[CharacterClass, int] = field(
        default_factory=lambda: {
            CharacterClass.WARRIOR: 20,
            CharacterClass.MAGE: 8,
            CharacterClass.ARCHER: 12,
            CharacterClass.ROGUE: 10,
            CharacterClass.PALADIN: 22,
            CharacterClass.NECROMANCER: 9,
        }
    )
    mana_fallback: int = 70
    attack_fallback: int = 20
    defense_fallback: int = 10


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Aggregate of every rule block."""

    progression: ProgressionRules = field(default_factory=ProgressionRules)
    base_stats: BaseStatRules = field(default_factory=BaseStatRules)


DEFAULT_RULES = RulesConfig()
