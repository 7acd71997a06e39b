"""
Equipment classification.

A resource's category is derived from its name and description on every
call; it is never stored.  The category selects the booking rules
(see ``app.services.reservation_rules``).

Precedence: categories are tested in ``CLASSIFICATION_ORDER`` and the first
category with a matching keyword wins.  Gym keywords are tested before court
keywords, so a "Vélo elliptique - terrain couvert" is gym equipment.
Text matching nothing falls back to ``DEFAULT_CATEGORY``.
"""

from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Protocol


class EquipmentCategory(str, Enum):
    PADEL_COURT = "padel_court"
    GYM_EQUIPMENT = "gym_equipment"


class Describable(Protocol):
    name: str
    description: str | None


# Keywords are stored accent-free and lowercase; input text is folded the same way.
CATEGORY_KEYWORDS: dict[EquipmentCategory, tuple[str, ...]] = {
    EquipmentCategory.GYM_EQUIPMENT: (
        "velo",
        "tapis",
        "elliptique",
        "fitness",
        "musculation",
        "rameur",
    ),
    EquipmentCategory.PADEL_COURT: (
        "padel",
        "terrain",
        "court",
    ),
}

CLASSIFICATION_ORDER: tuple[EquipmentCategory, ...] = (
    EquipmentCategory.GYM_EQUIPMENT,
    EquipmentCategory.PADEL_COURT,
)

DEFAULT_CATEGORY = EquipmentCategory.PADEL_COURT


def _fold(text: str | None) -> str:
    """Lowercase and strip accents ("Vélo" -> "velo")."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def classify_text(name: str, description: str | None = None) -> EquipmentCategory:
    haystacks = (_fold(name), _fold(description))
    for category in CLASSIFICATION_ORDER:
        keywords = CATEGORY_KEYWORDS[category]
        if any(kw in text for text in haystacks for kw in keywords):
            return category
    return DEFAULT_CATEGORY


def classify(resource: Describable) -> EquipmentCategory:
    """Return the equipment category of a resource. Never fails."""
    return classify_text(resource.name, getattr(resource, "description", None))
