import os
import tempfile
import time

# Point the app at a throwaway database / upload dir before it is imported
_TMP_DIR = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "local"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from catalog_api.database import engine  # noqa: E402
from catalog_api.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    # Recreate DB fresh for every test
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = jwt.encode(
        {"sub": "admin@example.com", "exp": int(time.time()) + 3600},
        "test-secret",
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}
