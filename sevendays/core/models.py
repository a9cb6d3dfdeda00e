from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_FACTIONS = 3
MAX_STABILITY = 100
MAX_TRUST = 100
MAX_FOOD = 99


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


# ——— Game state —————————————————————————————————————————

class Faction(_CamelModel):
    name: str
    trust: int = Field(ge=0, le=MAX_TRUST)


class FactionTrust(_CamelModel):
    factions: List[Faction] = Field(default_factory=list, max_length=MAX_FACTIONS)


class Resources(_CamelModel):
    food: int = Field(default=20, ge=0, le=MAX_FOOD)


class GameState(_CamelModel):
    """
    One playthrough: narrative text fields overwritten every turn plus the
    bounded counters the turn controller mutates. Range checks run on every
    assignment, so callers clamp before assigning.
    """
    scene: str = ""
    objective: str = ""
    plot_summary: str = ""
    last_player_action: str = ""
    turns_remaining: int = Field(default=14, ge=0, le=14)
    stability: int = Field(default=70, ge=0, le=MAX_STABILITY)
    resources: Resources = Field(default_factory=Resources)
    faction_trust: FactionTrust = Field(default_factory=FactionTrust)
    selected_theme: str = "Random"


# ——— Service payloads ———————————————————————————————————
# Decoded values are left unbounded here; the state rules clamp them.

class FactionUpdate(_CamelModel):
    name: str
    trust: Optional[int] = None


class ResourcesUpdate(_CamelModel):
    food: Optional[int] = None


class StabilityUpdate(_CamelModel):
    stability: Optional[int] = None


class FactionTrustUpdate(_CamelModel):
    factions: Optional[List[FactionUpdate]] = None


class StateUpdate(_CamelModel):
    resources: Optional[ResourcesUpdate] = None
    stability: Optional[StabilityUpdate] = None
    faction_trust: Optional[FactionTrustUpdate] = None


class TurnResponse(_CamelModel):
    situation_text: str
    choices: List[str] = Field(min_length=4, max_length=4)
    state_update: Optional[StateUpdate] = None


# ——— End of game ————————————————————————————————————————

class Terminal(str, Enum):
    NONE = "none"
    TURNS_EXHAUSTED = "turnsExhausted"
    STABILITY_COLLAPSED = "stabilityCollapsed"


class GameOverSummary(_CamelModel):
    title: str
    summary: str
    survived: bool
    reason: Terminal
    generated: bool = False
