import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import List, Optional

from sevendays.core.models import GameOverSummary, GameState, Terminal
from sevendays.core.settings import Settings, settings as default_settings
from sevendays.core.state import apply_choice, apply_state_update, day_label, is_terminal, new_game_state
from sevendays.core.storage import KeyValueStore, load_theme
from sevendays.services.errors import NarrativeError, ServiceError
from sevendays.services.narrative import NarrativeClient
from sevendays.services.parser import parse_turn_response
from sevendays.services.summarizer import EndOfGameSummarizer

logger = logging.getLogger(__name__)

OVERLOADED_MESSAGE = "The server is temporarily overloaded.\nPlease try again in a moment."
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    APPLYING = "applying"
    TERMINAL = "terminal"


class TurnController:
    """
    Owns the GameState for one playthrough and runs it turn by turn.

    Work happens on a single worker thread, so at most one narrative request
    is ever in flight; start() and submit_choice() return the Future of the
    turn they queued, or None when the call was ignored.
    """

    def __init__(
        self,
        narrative: NarrativeClient,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        summarizer: Optional[EndOfGameSummarizer] = None,
        state: Optional[GameState] = None,
    ):
        self.settings = settings or default_settings
        self.narrative = narrative
        self.store = store
        self.summarizer = summarizer or EndOfGameSummarizer(narrative, store)
        self.state: GameState = state or new_game_state(load_theme(store), self.settings)

        self.phase = Phase.IDLE
        self.situation_text = ""
        self.choices: List[str] = []
        self.error_message: Optional[str] = None
        self.terminal = Terminal.NONE
        self.summary: Optional[GameOverSummary] = None

        self._first_turn = True
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="turn")

    @property
    def day(self) -> str:
        return day_label(self.state.turns_remaining, self.settings.max_turns)

    def start(self) -> Optional[Future]:
        with self._lock:
            if self.phase != Phase.IDLE or self.choices:
                logger.info("Ignoring start in phase %s", self.phase.value)
                return None
            self.error_message = None
            self.phase = Phase.AWAITING_RESPONSE
        logger.info("Starting game (theme %s)", self.state.selected_theme)
        return self._executor.submit(self._run_turn)

    def submit_choice(self, index: int) -> Optional[Future]:
        with self._lock:
            if self.phase != Phase.IDLE:
                logger.info("Ignoring choice %d in phase %s", index, self.phase.value)
                return None
            if not 0 <= index < len(self.choices):
                logger.warning("Ignoring out-of-range choice %d", index)
                return None

            apply_choice(self.state, self.choices[index])
            self._first_turn = False
            self.error_message = None
            self.phase = Phase.AWAITING_RESPONSE

            reason = is_terminal(self.state)
            if reason != Terminal.NONE:
                # the choice itself ended the game; no narrative request
                self.phase = Phase.TERMINAL
                self.terminal = reason
                return self._executor.submit(self._finish, reason)

        return self._executor.submit(self._run_turn)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # ——— Worker side ——————————————————————————————————————

    def _run_turn(self) -> None:
        opening = self._first_turn
        try:
            raw = self.narrative.request_turn(self.state, opening=opening)
            response = parse_turn_response(raw)
        except NarrativeError as e:
            self._fail(e)
            return
        except Exception as e:
            logger.exception("Unexpected error during turn: %s", e)
            self._fail(e)
            raise

        self.phase = Phase.APPLYING
        self.situation_text = response.situation_text
        self.choices = list(response.choices)
        self.state.scene = response.situation_text
        if opening:
            logger.info("Opening scene shown; state update deferred")
        else:
            apply_state_update(self.state, response.state_update)

        reason = is_terminal(self.state)
        if reason != Terminal.NONE:
            self.phase = Phase.TERMINAL
            self.terminal = reason
            self._finish(reason)
            return

        logger.info(
            "%s: stability %d, factions %s",
            self.day,
            self.state.stability,
            [(f.name, f.trust) for f in self.state.faction_trust.factions],
        )
        self.phase = Phase.IDLE

    def _fail(self, error: Exception) -> None:
        if isinstance(error, ServiceError) and error.overloaded:
            self.error_message = OVERLOADED_MESSAGE
        else:
            self.error_message = GENERIC_ERROR_MESSAGE
        logger.error("Turn failed: %s", error)
        self.phase = Phase.IDLE

    def _finish(self, reason: Terminal) -> None:
        logger.info(
            "Game over (%s): stability %d, %d turns left",
            reason.value,
            self.state.stability,
            self.state.turns_remaining,
        )
        self.summary = self.summarizer.summarize(self.state, reason)
