import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Importing scoreboard.main validates CORS settings at import time.
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("ALLOW_CREDENTIALS", "false")
os.environ.setdefault("DISABLE_RATE_LIMITS", "true")
# Honour any externally provided DATABASE_URL but fall back to an in-memory
# SQLite database so local runs remain isolated.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from scoreboard.cache import scoreboard_cache  # noqa: E402


@pytest.fixture(autouse=True)
def clear_scoreboard_cache():
    """Each test starts without cached scoreboards."""

    scoreboard_cache._store.clear()
    yield
    scoreboard_cache._store.clear()
