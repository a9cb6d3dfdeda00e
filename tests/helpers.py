import json
import threading

CHOICES = ["Barricade the doors", "Send scouts", "Ration the food", "Call a meeting"]


def make_payload(situation="The generators sputter.", choices=None, state_update=None, **extra):
    body = {"situationText": situation, "choices": list(choices or CHOICES)}
    if state_update is not None:
        body["stateUpdate"] = state_update
    body.update(extra)
    return json.dumps(body)


class ScriptedNarrative:
    """
    Stands in for NarrativeClient: each request_turn pops the next scripted
    item, raising it if it is an exception.
    """

    def __init__(self, turns=None, game_over=None, gate=None):
        self.turns = list(turns or [])
        self.game_over = dict(game_over or {})
        self.gate = gate
        self.entered = threading.Event()
        self.turn_calls = []
        self.game_over_calls = []

    def request_turn(self, state, opening=False):
        self.turn_calls.append((state.turns_remaining, opening))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5)
        item = self.turns.pop(0) if self.turns else make_payload()
        if isinstance(item, Exception):
            raise item
        return item

    def request_game_over(self, state, section="summary", outcome=""):
        self.game_over_calls.append(section)
        item = self.game_over.get(section, "")
        if isinstance(item, Exception):
            raise item
        return item


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def completion(text):
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})
