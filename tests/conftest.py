"""
Pytest configuration and fixtures for health-export.

Provides in-memory Drive/Sheets fakes, a ServiceContext wired to them and
sample health data.
"""

import asyncio
import base64
import sys
from typing import Optional

import pytest

from health_export.adapters.auth import StaticTokenProvider
from health_export.adapters.interfaces import FileInfo, SheetData
from health_export.context import ServiceContext
from health_export.coordinator import processor as processor_module
from health_export.errors import AppError
from health_export.models import HealthData
from health_export.network import NetworkStatus, StaticNetworkStatus
from health_export.result import Err, Ok
from health_export.settings import Settings
from health_export.storage import MemoryStorage

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


class FakeDrive:
    """FileOperations over a dict. ``fail[method] = error`` makes a method return Err."""

    default_folder_name = "Health Export For AI Data"

    def __init__(self) -> None:
        self.files: dict[str, dict] = {}
        self.folders: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, AppError] = {}
        self._next = 0

    def _new_id(self, prefix: str) -> str:
        self._next += 1
        return f"{prefix}-{self._next}"

    def _failure(self, method: str):
        error = self.fail.get(method)
        return Err(error) if error is not None else None

    def content_of(self, name: str) -> Optional[str]:
        for f in self.files.values():
            if f["name"] == name:
                return f["content"]
        return None

    async def find_file(self, name, mime_type, folder_id=None):
        self.calls.append(("find_file", name, folder_id))
        if failed := self._failure("find_file"):
            return failed
        for file_id, f in self.files.items():
            if f["name"] == name and f["mime"] == mime_type and f["folder"] == folder_id:
                return Ok(FileInfo(id=file_id, name=name))
        return Ok(None)

    async def upload_file(self, content, name, mime_type, folder_id=None, *, is_base64=False):
        self.calls.append(("upload_file", name, content))
        if failed := self._failure("upload_file"):
            return failed
        file_id = self._new_id("file")
        self.files[file_id] = {
            "name": name,
            "mime": mime_type,
            "folder": folder_id,
            "content": content,
            "is_base64": is_base64,
        }
        return Ok(file_id)

    async def update_file(self, file_id, content, mime_type, *, is_base64=False):
        self.calls.append(("update_file", file_id, content))
        if failed := self._failure("update_file"):
            return failed
        self.files[file_id]["content"] = content
        return Ok(True)

    async def download_file_content(self, file_id):
        self.calls.append(("download_file_content", file_id))
        if failed := self._failure("download_file_content"):
            return failed
        return Ok(self.files[file_id]["content"])

    async def find_or_create_folder(self, name):
        self.calls.append(("find_or_create_folder", name))
        if failed := self._failure("find_or_create_folder"):
            return failed
        if name not in self.folders:
            self.folders[name] = self._new_id("folder")
        return Ok(self.folders[name])

    async def check_folder_exists(self, folder_id):
        self.calls.append(("check_folder_exists", folder_id))
        if failed := self._failure("check_folder_exists"):
            return failed
        return Ok(folder_id in self.folders.values())

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]


class FakeSheets:
    """SpreadsheetAdapter over a dict of {id: {name, folder, headers, rows}}."""

    def __init__(self) -> None:
        self.sheets: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, AppError] = {}
        self._next = 0

    def _failure(self, method: str):
        error = self.fail.get(method)
        return Err(error) if error is not None else None

    def by_name(self, name: str) -> Optional[dict]:
        for sheet in self.sheets.values():
            if sheet["name"] == name:
                return sheet
        return None

    async def find_spreadsheet(self, name, folder_id=None):
        self.calls.append(("find_spreadsheet", name))
        if failed := self._failure("find_spreadsheet"):
            return failed
        for sheet_id, sheet in self.sheets.items():
            if sheet["name"] == name and sheet["folder"] == folder_id:
                return Ok(sheet_id)
        return Ok(None)

    async def create_spreadsheet(self, name, headers, folder_id=None):
        self.calls.append(("create_spreadsheet", name, list(headers)))
        if failed := self._failure("create_spreadsheet"):
            return failed
        self._next += 1
        sheet_id = f"sheet-{self._next}"
        self.sheets[sheet_id] = {"name": name, "folder": folder_id, "headers": list(headers), "rows": []}
        return Ok(sheet_id)

    async def get_sheet_data(self, spreadsheet_id):
        self.calls.append(("get_sheet_data", spreadsheet_id))
        if failed := self._failure("get_sheet_data"):
            return failed
        sheet = self.sheets[spreadsheet_id]
        return Ok(SheetData(headers=list(sheet["headers"]), rows=[list(r) for r in sheet["rows"]]))

    async def update_headers(self, spreadsheet_id, headers):
        self.calls.append(("update_headers", spreadsheet_id, list(headers)))
        if failed := self._failure("update_headers"):
            return failed
        self.sheets[spreadsheet_id]["headers"] = list(headers)
        return Ok(True)

    async def update_rows(self, spreadsheet_id, start_row, rows):
        self.calls.append(("update_rows", spreadsheet_id, start_row, [list(r) for r in rows]))
        if failed := self._failure("update_rows"):
            return failed
        stored = self.sheets[spreadsheet_id]["rows"]
        offset = start_row - 2
        for i, row in enumerate(rows):
            if offset + i < len(stored):
                stored[offset + i] = list(row)
            else:
                stored.append(list(row))
        return Ok(True)

    async def fetch_pdf(self, spreadsheet_id):
        self.calls.append(("fetch_pdf", spreadsheet_id))
        if failed := self._failure("fetch_pdf"):
            return failed
        return Ok(base64.b64encode(b"%PDF-1.4 " + spreadsheet_id.encode()).decode())

    def calls_to(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]


@pytest.fixture(autouse=True)
def reset_in_flight(monkeypatch):
    """Each test starts with no drain in flight."""
    monkeypatch.setattr(processor_module, "_in_flight", False)


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, STATE_DIR=tmp_path, EXECUTION_TIMEOUT_SEC=5.0)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def network():
    return StaticNetworkStatus(NetworkStatus.ONLINE)


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def sheets():
    return FakeSheets()


@pytest.fixture
def ctx(storage, network, drive, sheets, settings):
    """ServiceContext wired to in-memory fakes."""
    return ServiceContext(
        storage=storage,
        network=network,
        tokens=StaticTokenProvider("test-token"),
        file_ops_factory=lambda token: drive,
        sheets_factory=lambda token: sheets,
        settings=settings,
    )


@pytest.fixture
def health_data():
    """Two days of steps, weight and exercise in 2025."""
    return HealthData.model_validate(
        {
            "steps": [
                {"date": "2025-01-01", "count": 5000},
                {"date": "2025-01-02", "count": 7200},
            ],
            "weight": [{"date": "2025-01-01", "value": 70.5}],
            "exercise": [
                {"date": "2025-01-02", "type": "Running", "duration_minutes": 30},
                {"date": "2025-01-02", "type": "Running", "duration_minutes": 15},
            ],
        }
    )
