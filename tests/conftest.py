import pytest

from sevendays.core.settings import Settings
from sevendays.core.storage import MemoryStore


@pytest.fixture
def cfg(tmp_path):
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        max_attempts=3,
        state_dir=tmp_path,
    )


@pytest.fixture
def store():
    return MemoryStore()
