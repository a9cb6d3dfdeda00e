import threading

import pytest

from sevendays.core.models import GameState, Terminal
from sevendays.core.storage import FINAL_STATE_KEY, THEME_KEY, MemoryStore, load_final_state
from sevendays.services.errors import ServiceError
from sevendays.services.game_runner import (
    GENERIC_ERROR_MESSAGE,
    OVERLOADED_MESSAGE,
    Phase,
    TurnController,
)

from .helpers import CHOICES, ScriptedNarrative, make_payload

DROP = {"stability": {"stability": 10}, "factionTrust": {"factions": [{"name": "Guards", "trust": 40}]}}


@pytest.fixture
def make_controller(cfg, store):
    controllers = []

    def _make(narrative, **kwargs):
        controller = TurnController(narrative, store, cfg, **kwargs)
        controllers.append(controller)
        return controller

    yield _make
    for controller in controllers:
        controller.shutdown()


def test_theme_comes_from_store(make_controller, store):
    store.save(THEME_KEY, "Hospital blackout")
    controller = make_controller(ScriptedNarrative())
    assert controller.state.selected_theme == "Hospital blackout"


def test_opening_turn_does_not_apply_state_update(make_controller):
    narrative = ScriptedNarrative([make_payload("Sirens wail.", state_update=DROP)])
    controller = make_controller(narrative)

    controller.start().result()

    assert controller.phase == Phase.IDLE
    assert controller.situation_text == "Sirens wail."
    assert controller.choices == CHOICES
    assert controller.state.stability == 70
    assert controller.state.faction_trust.factions == []
    assert controller.state.turns_remaining == 14
    assert narrative.turn_calls == [(14, True)]


def test_choice_applies_update_after_opening(make_controller):
    narrative = ScriptedNarrative([make_payload(state_update=DROP), make_payload("Smoke rises.", state_update=DROP)])
    controller = make_controller(narrative)
    controller.start().result()

    controller.submit_choice(1).result()

    state = controller.state
    assert state.turns_remaining == 13
    assert state.last_player_action == "Send scouts"
    assert state.stability == 50
    assert [(f.name, f.trust) for f in state.faction_trust.factions] == [("Guards", 40)]
    assert state.scene == "Smoke rises."
    assert narrative.turn_calls == [(14, True), (13, False)]


def test_start_is_one_shot(make_controller):
    controller = make_controller(ScriptedNarrative())
    controller.start().result()
    assert controller.start() is None


def test_out_of_range_choice_is_ignored(make_controller):
    controller = make_controller(ScriptedNarrative())
    assert controller.submit_choice(0) is None
    controller.start().result()
    assert controller.submit_choice(4) is None
    assert controller.submit_choice(-1) is None
    assert controller.state.turns_remaining == 14


def test_second_choice_while_awaiting_is_ignored(make_controller):
    gate = threading.Event()
    narrative = ScriptedNarrative([make_payload(), make_payload(state_update=DROP), make_payload()])
    controller = make_controller(narrative)
    controller.start().result()

    narrative.gate = gate
    narrative.entered.clear()
    first = controller.submit_choice(0)
    assert narrative.entered.wait(5)
    assert controller.phase == Phase.AWAITING_RESPONSE

    assert controller.submit_choice(2) is None
    assert controller.start() is None

    gate.set()
    first.result()
    assert len(narrative.turn_calls) == 2
    assert controller.state.turns_remaining == 13
    assert controller.state.last_player_action == CHOICES[0]
    assert controller.state.stability == 50
    assert controller.phase == Phase.IDLE


def test_service_overload_keeps_game_interactive(make_controller):
    narrative = ScriptedNarrative([make_payload(), ServiceError("HTTP 503", status_code=503)])
    controller = make_controller(narrative)
    controller.start().result()

    controller.submit_choice(0).result()

    assert controller.phase == Phase.IDLE
    assert controller.error_message == OVERLOADED_MESSAGE
    assert controller.state.turns_remaining == 13
    assert controller.state.stability == 70
    assert controller.choices == CHOICES

    controller.submit_choice(1).result()
    assert controller.error_message is None
    assert controller.state.turns_remaining == 12


def test_parse_failure_shows_generic_message(make_controller):
    narrative = ScriptedNarrative([make_payload(), '{"situationText": "half'])
    controller = make_controller(narrative)
    controller.start().result()
    before = controller.state.model_copy(deep=True)

    controller.submit_choice(0).result()

    assert controller.error_message == GENERIC_ERROR_MESSAGE
    assert controller.phase == Phase.IDLE
    assert controller.state.stability == before.stability
    assert controller.state.faction_trust == before.faction_trust


def test_failed_opening_can_be_retried(make_controller):
    narrative = ScriptedNarrative([ServiceError("HTTP 500", status_code=500), make_payload("Dawn.")])
    controller = make_controller(narrative)

    controller.start().result()
    assert controller.error_message == GENERIC_ERROR_MESSAGE
    assert controller.choices == []

    controller.start().result()
    assert controller.situation_text == "Dawn."
    assert controller.error_message is None


def test_stability_collapse_ends_game(make_controller, store):
    narrative = ScriptedNarrative(
        [make_payload(), make_payload(state_update={"stability": {"stability": 0}})],
        game_over={"title": "The Last Light", "summary": "Everyone scattered."},
    )
    controller = make_controller(narrative, state=GameState(stability=15))
    controller.start().result()

    controller.submit_choice(0).result()

    assert controller.phase == Phase.TERMINAL
    assert controller.terminal == Terminal.STABILITY_COLLAPSED
    assert controller.summary.title == "The Last Light"
    assert not controller.summary.survived
    assert load_final_state(store).stability == 0
    assert controller.submit_choice(0) is None


def test_turns_exhausted_skips_last_request(make_controller, store):
    narrative = ScriptedNarrative(game_over={"title": "Seven Dawns", "summary": "You held on."})
    controller = make_controller(narrative)
    controller.start().result()

    for _ in range(13):
        controller.submit_choice(0).result()
        assert controller.phase == Phase.IDLE
    assert controller.state.turns_remaining == 1

    controller.submit_choice(3).result()

    assert controller.state.turns_remaining == 0
    assert controller.terminal == Terminal.TURNS_EXHAUSTED
    assert controller.phase == Phase.TERMINAL
    assert len(narrative.turn_calls) == 14
    assert narrative.game_over_calls == ["title", "summary"]
    assert controller.summary.survived
    assert store.load(FINAL_STATE_KEY) is not None


def test_last_choice_reaches_summary_when_save_fails(cfg):
    class FailingStore(MemoryStore):
        def save(self, key, value):
            raise OSError("disk full")

    narrative = ScriptedNarrative(game_over={"title": "Seven Dawns", "summary": "You held on."})
    controller = TurnController(narrative, FailingStore(), cfg, state=GameState(turns_remaining=1))
    try:
        controller.start().result()
        controller.submit_choice(0).result()

        assert controller.phase == Phase.TERMINAL
        assert controller.terminal == Terminal.TURNS_EXHAUSTED
        assert controller.summary.title == "Seven Dawns"
    finally:
        controller.shutdown()
