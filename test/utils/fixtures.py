import pytest
from fastapi.testclient import TestClient

from taptab.services.backend import get_menu_backend
from taptab.services.backend.mock import MockMenuBackend
from taptab.services.editor import EditorSession
from taptab.services.menu_cache import MemoryMenuStore


@pytest.fixture
def backend() -> MockMenuBackend:
    return MockMenuBackend()


@pytest.fixture
def session(backend) -> EditorSession:
    return EditorSession(backend, menu_store=MemoryMenuStore(), debounce_seconds=0.05, stale_time=60)


@pytest.fixture
def client():
    from taptab.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_backend() -> MockMenuBackend:
    """The backend instance the application routes use."""
    return get_menu_backend()


@pytest.fixture
async def sql_backend(tmp_path):
    """SQL backend on a throwaway SQLite database."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from taptab.database import init_db
    from taptab.services.backend.sql import SqlMenuBackend

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'menu.db'}")
    await init_db(engine)
    sql = SqlMenuBackend(engine)
    yield sql
    await sql.close()


@pytest.fixture
async def http_backend():
    """HTTP backend talking to the application in-process."""
    import httpx

    from taptab.main import app
    from taptab.services.backend.http import HttpMenuBackend

    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    remote = HttpMenuBackend("http://testserver", client=client)
    yield remote
    await remote.close()
