import os
import pytest
from landclass.config import get_settings

def pytest_configure():
    os.environ.setdefault("LANDCLASS_LOG_LEVEL", "WARNING")

@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # evita fuga de estado entre tests
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

def pytest_collection_modifyitems(items):
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
