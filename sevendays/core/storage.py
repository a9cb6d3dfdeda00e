import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from .models import GameState
from .settings import settings

logger = logging.getLogger(__name__)

FINAL_STATE_KEY = "FinalGameState"
THEME_KEY = "SelectedTheme"
DEFAULT_THEME = "Random"


class KeyValueStore(Protocol):
    def save(self, key: str, value: str) -> None: ...

    def load(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def save(self, key: str, value: str) -> None:
        self._data[key] = value

    def load(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Flat string key-value store persisted as a single JSON object, rewritten
    on every save/delete.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else settings.state_dir / "prefs.json"

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s: %s. Starting empty.", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def save(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def load(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._read().get(key, default)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


# ——— Well-known keys ————————————————————————————————————

def load_theme(store: KeyValueStore) -> str:
    return store.load(THEME_KEY) or DEFAULT_THEME


def save_theme(store: KeyValueStore, theme: str) -> None:
    store.save(THEME_KEY, theme or DEFAULT_THEME)


def save_final_state(store: KeyValueStore, state: GameState) -> None:
    store.save(FINAL_STATE_KEY, state.model_dump_json(by_alias=True))


def load_final_state(store: KeyValueStore) -> Optional[GameState]:
    raw = store.load(FINAL_STATE_KEY)
    if not raw:
        logger.error("No final game state stored under %s", FINAL_STATE_KEY)
        return None
    try:
        return GameState.model_validate_json(raw)
    except ValidationError as e:
        logger.error("Stored final game state is invalid: %s", e)
        return None


def clear_final_state(store: KeyValueStore) -> None:
    store.delete(FINAL_STATE_KEY)
