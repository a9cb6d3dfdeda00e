import logging
import math
from typing import Iterable, Optional

from .models import (
    MAX_FACTIONS,
    MAX_FOOD,
    MAX_STABILITY,
    MAX_TRUST,
    Faction,
    FactionUpdate,
    GameState,
    StateUpdate,
    Terminal,
)
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

MAX_STABILITY_DELTA = 20
SURVIVAL_STABILITY = 30
STABLE_STABILITY = 70

SEED_OBJECTIVE = "Survive for seven days."
SEED_PLOT = "A new crisis has begun. You must make important decisions."
SEED_ACTION = "GameStart"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def new_game_state(theme: str = "Random", settings: Optional[Settings] = None) -> GameState:
    """
    Minimal seed; the narrative service invents the concrete scene, cast
    and factions on the first turn.
    """
    cfg = settings or default_settings
    return GameState(
        scene="Undecided",
        objective=SEED_OBJECTIVE,
        plot_summary=SEED_PLOT,
        last_player_action=SEED_ACTION,
        turns_remaining=cfg.max_turns,
        stability=cfg.initial_stability,
        selected_theme=theme or "Random",
    )


def apply_choice(state: GameState, choice_text: str) -> GameState:
    state.last_player_action = choice_text
    state.turns_remaining = max(0, state.turns_remaining - 1)
    state.plot_summary = f"The player's latest choice: {choice_text}"
    return state


def apply_state_update(state: GameState, update: Optional[StateUpdate]) -> GameState:
    """
    Apply the fields present in `update`. Stability moves at most
    MAX_STABILITY_DELTA away from its previous value before being clamped.
    """
    if update is None:
        return state

    if update.resources is not None and update.resources.food is not None:
        state.resources.food = clamp(update.resources.food, 0, MAX_FOOD)

    if update.stability is not None and update.stability.stability is not None:
        previous = state.stability
        delta = clamp(update.stability.stability - previous, -MAX_STABILITY_DELTA, MAX_STABILITY_DELTA)
        state.stability = clamp(previous + delta, 0, MAX_STABILITY)

    if update.faction_trust is not None:
        merge_factions(state, update.faction_trust.factions)

    return state


def merge_factions(state: GameState, incoming: Optional[Iterable[FactionUpdate]]) -> GameState:
    factions = state.faction_trust.factions
    for upd in incoming or ():
        if upd.trust is None:
            continue
        trust = clamp(upd.trust, 0, MAX_TRUST)
        existing = next((f for f in factions if f.name == upd.name), None)
        if existing is not None:
            existing.trust = trust
        elif len(factions) < MAX_FACTIONS:
            factions.append(Faction(name=upd.name, trust=trust))
        else:
            logger.debug("Dropping faction %r: already tracking %d", upd.name, MAX_FACTIONS)
    return state


def is_terminal(state: GameState) -> Terminal:
    # stability first: a collapse on the last turn is still a collapse
    if state.stability <= 0:
        return Terminal.STABILITY_COLLAPSED
    if state.turns_remaining <= 0:
        return Terminal.TURNS_EXHAUSTED
    return Terminal.NONE


def survived(state: GameState, reason: Terminal) -> bool:
    return (
        reason == Terminal.TURNS_EXHAUSTED
        and state.stability >= SURVIVAL_STABILITY
        and state.resources.food > 0
    )


def stability_bracket(stability: int) -> str:
    if stability >= STABLE_STABILITY:
        return "stable"
    if stability >= SURVIVAL_STABILITY:
        return "strained"
    return "critical"


def day_label(turns_remaining: int, max_turns: int = 14) -> str:
    """
    Two turns per day, morning then afternoon: 14 turns left is
    "Day 1 Morning", 13 is "Day 1 Afternoon".
    """
    total_days = math.ceil(max_turns / 2)
    days_remaining = math.ceil(turns_remaining / 2)
    time_of_day = "Morning" if turns_remaining % 2 == 0 else "Afternoon"
    return f"Day {total_days + 1 - days_remaining} {time_of_day} ({turns_remaining} turns left)"
