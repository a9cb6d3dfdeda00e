import logging
from typing import Optional

from sevendays.core.models import GameOverSummary, GameState, Terminal
from sevendays.core.state import stability_bracket, survived
from sevendays.core.storage import KeyValueStore, save_final_state
from sevendays.services.errors import NarrativeError
from sevendays.services.narrative import NarrativeClient

logger = logging.getLogger(__name__)

# ——— Fallback text ——————————————————————————————————————

FALLBACK_TITLES = {
    True: "Survived Seven Days!",
    False: "Survival Failed...",
}

FALLBACK_SUMMARIES = {
    (True, "stable"): "You led your people through all seven days, and they came out stronger than they went in.",
    (True, "strained"): "You made it through all seven days, though the cracks in your community are plain to see.",
    (True, "critical"): "You reached the end of the seventh day, but only just; another morning may have broken everyone.",
    (False, "stable"): "Order held, but it was not enough: the seven days ended without safety secured.",
    (False, "strained"): "Tension and shortages wore your community down before the seven days were out.",
    (False, "critical"): "Stability collapsed. Your community scattered before the crisis could be overcome.",
}


def outcome_text(is_survived: bool, reason: Terminal) -> str:
    if reason == Terminal.STABILITY_COLLAPSED:
        return "the community collapsed"
    return "the player survived all seven days" if is_survived else "the seven days ended in failure"


def fallback_title(is_survived: bool) -> str:
    return FALLBACK_TITLES[is_survived]


def fallback_summary(state: GameState, is_survived: bool) -> str:
    text = FALLBACK_SUMMARIES[(is_survived, stability_bracket(state.stability))]
    if state.plot_summary:
        return f"{state.plot_summary}\n\n{text}"
    return text


class EndOfGameSummarizer:
    """
    Persists the final state, then asks the narrator for a title and an
    epilogue. Either part falls back to template text on failure or blank
    output. Never mutates the state.
    """

    def __init__(self, narrative: NarrativeClient, store: KeyValueStore):
        self.narrative = narrative
        self.store = store

    def summarize(self, state: GameState, reason: Terminal) -> GameOverSummary:
        try:
            save_final_state(self.store, state)
        except Exception as e:
            logger.exception("Failed to save final game state: %s", e)
        is_survived = survived(state, reason)
        outcome = outcome_text(is_survived, reason)

        title = self._generate(state, "title", outcome)
        summary = self._generate(state, "summary", outcome)
        return GameOverSummary(
            title=title or fallback_title(is_survived),
            summary=summary or fallback_summary(state, is_survived),
            survived=is_survived,
            reason=reason,
            generated=bool(title and summary),
        )

    def _generate(self, state: GameState, section: str, outcome: str) -> Optional[str]:
        try:
            text = self.narrative.request_game_over(state, section, outcome)
        except NarrativeError as e:
            logger.warning("Game-over %s generation failed, using fallback: %s", section, e)
            return None
        text = (text or "").strip()
        if not text:
            logger.warning("Game-over %s came back empty, using fallback", section)
            return None
        return text
