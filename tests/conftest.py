from __future__ import annotations

import importlib
from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


from persistence.client import JsonPatchClient  # noqa: E402
from persistence.memory_store import MemoryDocumentStore  # noqa: E402
from settings import Settings  # noqa: E402


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "store_backend": "memory",
        "redis_url": "redis://127.0.0.1:6379/0",
        "cas_max_retries": 4,
        "data_dir": tmp_path / "data",
        "debug_log_patches": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def client(memory_store: MemoryDocumentStore, settings: Settings) -> JsonPatchClient:
    c = JsonPatchClient(memory_store, settings=settings)
    c.init()
    return c


@pytest.fixture
def sandbox_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Point configuration at a temp directory so tests never touch real ./data.
    """
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("DEBUG_LOG_PATCHES", "1")
    return tmp_path


@pytest.fixture
def reload_endpoints(sandbox_env: Path) -> None:
    """
    Endpoints create the client singleton at import time; reload after sandboxing env.
    """
    import endpoints.patch_endpoints as patch_endpoints

    importlib.reload(patch_endpoints)
