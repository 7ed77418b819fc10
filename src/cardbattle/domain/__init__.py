"""Domain rules for the card battle ledger.

This package holds everything that does not touch storage:

* Enumerations and identifiers (see :mod:`enums` and :mod:`models`).
* The exception hierarchy raised by ledger operations (:mod:`errors`).
* Progression constants (:mod:`rules_config`) and the pure leveling and
  base-stat functions built on them (:mod:`progression`).
"""

from . import enums, errors, models, progression, rules_config

__all__ = ["enums", "errors", "models", "progression", "rules_config"]
