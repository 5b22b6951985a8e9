from __future__ import annotations

from enum import Enum


class EntityType(str, Enum):
    ORGANISM = "organism"
    NUTRIENT = "nutrient"


class ActionType(str, Enum):
    REPRODUCE = "reproduce"
    EAT = "eat"
