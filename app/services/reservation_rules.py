"""
Reservation rules – booking policy per equipment category.

The table is static policy data, validated once when it is built:

  • a non-positive increment or minimum, or a closing time not after the
    opening time, raises ``RulesConfigurationError`` (fail fast at startup)
  • a minimum longer than the maximum is logged and the entry falls back
    to ``DEFAULT_RULES``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import Mapping

from app.services.equipment import EquipmentCategory

logger = logging.getLogger(__name__)


class RulesConfigurationError(ValueError):
    """A rules entry that can never produce a sensible slot grid."""


@dataclass(frozen=True)
class ReservationRules:
    minimum_duration_minutes: int
    increment_minutes: int
    maximum_duration_minutes: int
    opens_at: time = time(8, 0)
    closes_at: time = time(22, 0)

    @property
    def durations(self) -> range:
        """Permitted durations, in minutes (empty when min > max)."""
        return range(
            self.minimum_duration_minutes,
            self.maximum_duration_minutes + 1,
            self.increment_minutes,
        )

    def allows_duration(self, duration_minutes: int) -> bool:
        return duration_minutes in self.durations


DEFAULT_RULES = ReservationRules(
    minimum_duration_minutes=60,
    increment_minutes=30,
    maximum_duration_minutes=240,
)

DEFAULT_RULES_BY_CATEGORY: dict[EquipmentCategory, ReservationRules] = {
    EquipmentCategory.PADEL_COURT: ReservationRules(
        minimum_duration_minutes=60,
        increment_minutes=30,
        maximum_duration_minutes=240,
    ),
    EquipmentCategory.GYM_EQUIPMENT: ReservationRules(
        minimum_duration_minutes=30,
        increment_minutes=30,
        maximum_duration_minutes=120,
    ),
}


def _check(category: object, rules: ReservationRules) -> None:
    if rules.increment_minutes <= 0:
        raise RulesConfigurationError(
            f"{category}: increment must be positive, got {rules.increment_minutes}"
        )
    if rules.minimum_duration_minutes <= 0:
        raise RulesConfigurationError(
            f"{category}: minimum duration must be positive, got {rules.minimum_duration_minutes}"
        )
    if rules.closes_at <= rules.opens_at:
        raise RulesConfigurationError(
            f"{category}: closes_at {rules.closes_at} is not after opens_at {rules.opens_at}"
        )


class RulesTable:
    """Immutable lookup from category to rules, with a documented default."""

    def __init__(
        self,
        entries: Mapping[EquipmentCategory, ReservationRules] | None = None,
        default: ReservationRules = DEFAULT_RULES,
    ) -> None:
        _check("default", default)
        self._default = default
        self._entries: dict[EquipmentCategory, ReservationRules] = {}

        source = DEFAULT_RULES_BY_CATEGORY if entries is None else entries
        for category, rules in source.items():
            _check(category, rules)
            if rules.minimum_duration_minutes > rules.maximum_duration_minutes:
                logger.warning(
                    "Rules for %s have minimum %d > maximum %d – using defaults",
                    category,
                    rules.minimum_duration_minutes,
                    rules.maximum_duration_minutes,
                )
                rules = default
            self._entries[category] = rules

    @property
    def default(self) -> ReservationRules:
        return self._default

    def rules_for(self, category: EquipmentCategory) -> ReservationRules:
        return self._entries.get(category, self._default)

    def __contains__(self, category: object) -> bool:
        return category in self._entries


default_rules_table = RulesTable()


def rules_for(category: EquipmentCategory) -> ReservationRules:
    """Rules for ``category`` from the built-in table."""
    return default_rules_table.rules_for(category)
