"""
Global pytest configuration and fixtures for the BuildLedger API test suite.
"""

import os

# Settings are read at import time, so the environment must be set first
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["XERO_CLIENT_ID"] = "test-client-id"
os.environ["XERO_CLIENT_SECRET"] = "test-client-secret"

from typing import Any, Dict, Generator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, Mock  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from buildledger.core.database import get_db  # noqa: E402
from buildledger.main import app  # noqa: E402
from prisma import Prisma  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.auth_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.expenses_fixtures import *  # noqa: F403, F401, E402
from tests.fixtures.xero_fixtures import *  # noqa: F403, F401, E402

TEST_JWT_SECRET = "test-secret-key-for-testing-only-32-chars"


@pytest.fixture
def mock_prisma() -> Mock:
    """
    Mock Prisma client for unit tests that don't need real database.
    """
    mock_db = Mock(spec=Prisma)
    # Make async methods return AsyncMock
    mock_db.profile.find_unique = AsyncMock(return_value=None)
    mock_db.profile.find_many = AsyncMock(return_value=[])
    mock_db.profile.update = AsyncMock()

    mock_db.department.find_unique = AsyncMock(return_value=None)
    mock_db.department.find_many = AsyncMock(return_value=[])
    mock_db.stage.find_unique = AsyncMock(return_value=None)

    mock_db.invoice.find_many = AsyncMock(return_value=[])
    mock_db.invoicelineitem.find_many = AsyncMock(return_value=[])

    mock_db.budgetsummarystage.find_many = AsyncMock(return_value=[])
    mock_db.budgetsummarystage.find_unique = AsyncMock(return_value=None)
    mock_db.budgetsummarystage.upsert = AsyncMock()

    mock_db.userfavoritedepartment.find_many = AsyncMock(return_value=[])
    mock_db.userfavoritedepartment.create = AsyncMock()
    mock_db.userfavoritedepartment.delete_many = AsyncMock(return_value=0)

    # Xero integration mocks
    mock_db.xeroconnection.find_first = AsyncMock(return_value=None)
    mock_db.xeroconnection.find_unique = AsyncMock(return_value=None)
    mock_db.xeroconnection.update_many = AsyncMock(return_value=1)
    mock_db.xeroconnection.upsert = AsyncMock()

    mock_db.execute_raw = AsyncMock(return_value=0)
    mock_db.query_raw = AsyncMock(return_value=[])

    return mock_db


@pytest.fixture
def mock_transaction(mock_prisma: Mock) -> Mock:
    """
    Transaction client yielded by ``mock_prisma.tx()``.
    """
    transaction = Mock(spec=Prisma)
    transaction.invoice.upsert = AsyncMock()
    transaction.invoicelineitem.upsert = AsyncMock()
    transaction.invoicelineitem.delete_many = AsyncMock(return_value=0)

    tx_context = MagicMock()
    tx_context.__aenter__ = AsyncMock(return_value=transaction)
    tx_context.__aexit__ = AsyncMock(return_value=False)
    mock_prisma.tx = Mock(return_value=tx_context)
    return transaction


@pytest.fixture
def test_jwt_secret() -> str:
    """JWT secret for generating test tokens."""
    return TEST_JWT_SECRET


@pytest.fixture
def valid_jwt_payload() -> Dict[str, Any]:
    """Valid JWT payload for testing."""
    return {
        "sub": "test-user-id-123",
        "email": "test@example.com",
        "aud": "authenticated",
        "role": "authenticated",
    }


@pytest.fixture
def valid_jwt_token(test_jwt_secret: str, valid_jwt_payload: Dict[str, Any]) -> str:
    """Generate a valid JWT token for testing."""
    return jwt.encode(valid_jwt_payload, test_jwt_secret, algorithm="HS256")


@pytest.fixture
def auth_headers(valid_jwt_token: str) -> Dict[str, str]:
    """Generate authentication headers with valid JWT token."""
    return {"Authorization": f"Bearer {valid_jwt_token}"}


@pytest.fixture
def cron_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer test-cron-secret"}


@pytest.fixture
def client(mock_prisma: Mock) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with the database swapped for ``mock_prisma``.

    The lifespan is not run, so no real database connection is made.
    """
    app.dependency_overrides[get_db] = lambda: mock_prisma
    yield TestClient(app)
    app.dependency_overrides.clear()
