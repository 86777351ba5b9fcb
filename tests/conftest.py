import sys
from pathlib import Path
from typing import Generator, List

import httpx
import pytest

from minddeck.cache import LocalCache
from minddeck.models import Card, Deck
from minddeck.operations import DeckManager
from minddeck.remote import RemoteDeckClient
from minddeck.server import create_app
from minddeck.store import DeckStore


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Run the test with its tmpdir as working directory, so export files and
    .env lookups never touch the repository.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    sys.path.insert(0, str(tmpdir))
    with tmpdir.as_cwd():
        yield


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep MINDDECK_* variables from the developer's shell out of tests."""
    for name in (
        "MINDDECK_CACHE_PATH",
        "MINDDECK_REMOTE_URL",
        "MINDDECK_UNDO_TIMEOUT",
        "MINDDECK_STORAGE_QUOTA_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)


# --- Cache Fixtures ---
@pytest.fixture
def cache_path_file(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "test_cache.duckdb"


@pytest.fixture(params=["memory", "file"])
def cache(request, cache_path_file: Path) -> Generator[LocalCache, None, None]:
    """A LocalCache, either in-memory or file-backed, closed on teardown."""
    path = ":memory:" if request.param == "memory" else cache_path_file
    local = LocalCache(path)
    yield local
    local.close()


@pytest.fixture
def memory_cache() -> Generator[LocalCache, None, None]:
    local = LocalCache(":memory:")
    yield local
    local.close()


# --- Backend Fixtures ---
@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "data.json"


@pytest.fixture
def backend_app(data_file: Path):
    return create_app(data_file)


@pytest.fixture
def remote(backend_app) -> RemoteDeckClient:
    """A client wired to the in-process backend app, no sockets involved."""
    return RemoteDeckClient(
        "http://testserver", transport=httpx.ASGITransport(app=backend_app)
    )


@pytest.fixture
def unreachable_remote() -> RemoteDeckClient:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return RemoteDeckClient(
        "http://backend.invalid", transport=httpx.MockTransport(refuse)
    )


@pytest.fixture
def offline_store(memory_cache: LocalCache) -> DeckStore:
    return DeckStore(memory_cache)


@pytest.fixture
def online_store(memory_cache: LocalCache, remote: RemoteDeckClient) -> DeckStore:
    return DeckStore(memory_cache, remote=remote)


@pytest.fixture
def manager(offline_store: DeckStore) -> DeckManager:
    return DeckManager(offline_store)


# --- Sample Data ---
@pytest.fixture
def sample_decks() -> List[Deck]:
    return [
        Deck(
            id=1,
            name="Spanish",
            description="Basics",
            cards=[
                Card(id=11, front="hola", back="hello"),
                Card(id=12, front="adios", back="goodbye"),
            ],
        ),
        Deck(id=2, name="Empty", description="", cards=[]),
    ]
