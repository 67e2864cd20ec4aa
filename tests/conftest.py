# tests/conftest.py
import pathlib, pytest, os
from dotenv import load_dotenv

# Load before any feedmix module reads its config at import time
load_dotenv(pathlib.Path(__file__).parent / ".env.test", override=True)

@pytest.fixture(scope="session", autouse=True)
def _init_db():
    for name in ("DB_FILE", "PREFS_CACHE_FILE"):
        pathlib.Path(os.environ[name]).unlink(missing_ok=True)
    from feedmix.store import init_db
    init_db()

@pytest.fixture()
def client():
    from fastapi.testclient import TestClient
    from feedmix.main import app
    return TestClient(app)

@pytest.fixture()
def admin_headers():
    return {"X-API-Key": "test-key"}
