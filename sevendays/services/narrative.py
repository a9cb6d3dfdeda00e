import logging
from typing import Optional

from sevendays.core.models import GameState
from sevendays.core.settings import Settings, settings as default_settings
from sevendays.core.state import day_label
from sevendays.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

# ——— Prompt templates ——————————————————————————————————

TURN_PROMPT = (
    "SYSTEM: You are the narrator of a seven-day survival game. The player leads a "
    "community through a crisis; every turn you describe the situation and offer "
    "exactly four distinct choices.\n"
    "{theme_line}\n"
    "GAME STATE:\n"
    "- Turn: {turn} of {max_turns} ({day})\n"
    "- Scene: {scene}\n"
    "- Objective: {objective}\n"
    "- Story so far: {plot_summary}\n"
    "- Last player action: {last_action}\n"
    "- Stability: {stability}/100 (0 means collapse)\n"
    "- Food: {food}\n"
    "- Factions: {factions}\n"
    "RULES: Stability may change by at most 20 per turn. Track at most 3 factions "
    "and reuse their exact names. {opening_rule}\n"
    "OUTPUT: Reply with one JSON object and nothing else, shaped as\n"
    '{{"situationText": string, "choices": [string, string, string, string], '
    '"stateUpdate": {{"resources": {{"food": int}}, "stability": {{"stability": int}}, '
    '"factionTrust": {{"factions": [{{"name": string, "trust": int}}]}}}}}}\n'
    "Omit any stateUpdate field that does not change."
)

OPENING_RULE = "This is the opening scene: establish the setting, the crisis and the factions."
CONTINUE_RULE = "Continue from the last player action and show its consequences."

RANDOM_THEME_LINE = "THEME: Pick an original crisis theme of your own."
THEME_LINE = "THEME: {theme}"

GAME_OVER_PROMPTS = {
    "title": (
        "SYSTEM: You are the narrator of a seven-day survival game that has just ended.\n"
        "USER: Outcome: {outcome}. Final stability {stability}/100. Story: {plot_summary}\n"
        "Write a short ending title (at most 8 words). Reply with the title only."
    ),
    "summary": (
        "SYSTEM: You are the narrator of a seven-day survival game that has just ended.\n"
        "USER: Outcome: {outcome}. Final stability {stability}/100, food {food}, "
        "factions: {factions}. Last scene: {scene}. Story: {plot_summary}\n"
        "Write a 3-4 sentence epilogue in plain prose. No JSON, no headings."
    ),
}


def format_factions(state: GameState) -> str:
    factions = state.faction_trust.factions
    if not factions:
        return "none yet"
    return ", ".join(f"{f.name} (trust {f.trust}/100)" for f in factions)


def build_turn_prompt(state: GameState, max_turns: int = 14, opening: bool = False) -> str:
    theme = state.selected_theme or "Random"
    theme_line = RANDOM_THEME_LINE if theme == "Random" else THEME_LINE.format(theme=theme)
    return TURN_PROMPT.format(
        theme_line=theme_line,
        turn=max_turns - state.turns_remaining + 1,
        max_turns=max_turns,
        day=day_label(state.turns_remaining, max_turns),
        scene=state.scene,
        objective=state.objective,
        plot_summary=state.plot_summary,
        last_action=state.last_player_action,
        stability=state.stability,
        food=state.resources.food,
        factions=format_factions(state),
        opening_rule=OPENING_RULE if opening else CONTINUE_RULE,
    )


def build_game_over_prompt(state: GameState, section: str, outcome: str) -> str:
    if section not in GAME_OVER_PROMPTS:
        raise ValueError(f"Unknown game-over section: {section!r}")
    return GAME_OVER_PROMPTS[section].format(
        outcome=outcome,
        stability=state.stability,
        food=state.resources.food,
        factions=format_factions(state),
        scene=state.scene,
        plot_summary=state.plot_summary,
    )


class NarrativeClient:
    def __init__(self, gemini: Optional[GeminiClient] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.gemini = gemini or GeminiClient(self.settings)

    def request_turn(self, state: GameState, opening: bool = False) -> str:
        prompt = build_turn_prompt(state, self.settings.max_turns, opening=opening)
        logger.info("Requesting turn %d", self.settings.max_turns - state.turns_remaining + 1)
        return self.gemini.generate(prompt)

    def request_game_over(self, state: GameState, section: str = "summary", outcome: str = "") -> str:
        prompt = build_game_over_prompt(state, section, outcome or "the game ended")
        logger.info("Requesting game-over %s", section)
        return self.gemini.generate(prompt)
