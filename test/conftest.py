import os

import pytest

# Development mode: in-memory backend, in-process menu cache, mock billing
os.environ["ENV_MODE"] = "development"
os.environ["PAYWALL_ENABLED"] = "false"

from taptab.core.config import get_settings
from taptab.services.backend import reset_menu_backend
from taptab.services.billing import reset_billing_service
from taptab.services.full_menu import get_full_menu_loader
from taptab.services.menu_cache import reset_menu_store


def _reset_services():
    get_settings.cache_clear()
    reset_menu_backend()
    reset_menu_store()
    reset_billing_service()
    get_full_menu_loader.cache_clear()


@pytest.fixture(autouse=True)
def isolated_services(tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIRECTORY", str(tmp_path / "uploads"))
    monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "data"))
    _reset_services()
    yield
    _reset_services()
