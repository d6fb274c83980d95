"""
Collaborator contracts for remote documents.

Every method returns a ``Result``; implementations never raise across this
boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Union

from ..errors import AppError
from ..result import Result

Cell = Union[str, int, float, None]

MIME_CSV = "text/csv"
MIME_JSON = "application/json"
MIME_PDF = "application/pdf"
MIME_FOLDER = "application/vnd.google-apps.folder"
MIME_SPREADSHEET = "application/vnd.google-apps.spreadsheet"


@dataclass(frozen=True)
class FileInfo:
    id: str
    name: str


@dataclass
class SheetData:
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)


class FileOperations(Protocol):
    default_folder_name: str

    async def find_file(
        self, name: str, mime_type: str, folder_id: Optional[str] = None
    ) -> Result[Optional[FileInfo], AppError]: ...

    async def upload_file(
        self,
        content: str,
        name: str,
        mime_type: str,
        folder_id: Optional[str] = None,
        *,
        is_base64: bool = False,
    ) -> Result[str, AppError]: ...

    async def update_file(
        self, file_id: str, content: str, mime_type: str, *, is_base64: bool = False
    ) -> Result[bool, AppError]: ...

    async def download_file_content(self, file_id: str) -> Result[str, AppError]: ...

    async def find_or_create_folder(self, name: str) -> Result[str, AppError]: ...

    async def check_folder_exists(self, folder_id: str) -> Result[bool, AppError]: ...


class SpreadsheetAdapter(Protocol):
    async def find_spreadsheet(
        self, name: str, folder_id: Optional[str] = None
    ) -> Result[Optional[str], AppError]: ...

    async def create_spreadsheet(
        self, name: str, headers: Sequence[str], folder_id: Optional[str] = None
    ) -> Result[str, AppError]: ...

    async def get_sheet_data(self, spreadsheet_id: str) -> Result[SheetData, AppError]: ...

    async def update_headers(
        self, spreadsheet_id: str, headers: Sequence[str]
    ) -> Result[bool, AppError]: ...

    async def update_rows(
        self, spreadsheet_id: str, start_row: int, rows: Sequence[Sequence[Cell]]
    ) -> Result[bool, AppError]: ...

    async def fetch_pdf(self, spreadsheet_id: str) -> Result[str, AppError]: ...
