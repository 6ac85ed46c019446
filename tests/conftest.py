import os

# Keep test runs from writing logs/app.log into the working directory
os.environ["LOG_FILE"] = ""

import pandas as pd
import pytest
from httpx import ASGITransport, AsyncClient

from testtracker.main import app
from testtracker.services.storage.excel_store import ExcelStore, get_store

CATALOGUE = [
    {"Cell Type": "FLIB", "Test Case": "Power On", "Test ID": "A1001", "Scope": "Cell", "Phase": "Phase 1", "Cells": "All"},
    {"Cell Type": "FLIB", "Test Case": "Door Interlock", "Test ID": "A1002", "Scope": "Safety", "Phase": "Phase 1, Phase 2", "Cells": "All"},
    {"Cell Type": "FLIB", "Test Case": "Cell Hardening", "Test ID": "CH-01", "Scope": "Hardening", "Phase": "", "Cells": "All"},
    {"Cell Type": "FLIB", "Test Case": "Volume Test", "Test ID": "VT-01", "Scope": "Volume", "Phase": "Phase 1", "Cells": "First"},
    {"Cell Type": "FLIB", "Test Case": "Network Check", "Test ID": "A1003", "Scope": "System", "Phase": "Phase 1", "Cells": "System"},
    {"Cell Type": "FLIB", "Test Case": "Firmware Update", "Test ID": "A1004", "Scope": "Cell", "Phase": "Phase 2", "Cells": "All"},
    {"Cell Type": "MCP", "Test Case": "Calibration", "Test ID": "M2001", "Scope": "Cell", "Phase": "Phase 1", "Cells": "All"},
]

SITE = "S1"
PHASE = "Phase 1"


@pytest.fixture
def store(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    pd.DataFrame(CATALOGUE).to_excel(data_dir / "test_cases.xlsx", index=False)
    return ExcelStore(data_dir=str(data_dir), results_dir=str(tmp_path / "results"))


@pytest.fixture
def configured_store(store):
    store.configure_site(SITE, PHASE, [{"type": "FLIB", "quantity": 2}], user="tester")
    return store


@pytest.fixture
def app_with_store(configured_store):
    app.dependency_overrides[get_store] = lambda: configured_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client_fixture(app_with_store):
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app_with_store),
        base_url="http://testserver"
    ) as client:
        yield client
