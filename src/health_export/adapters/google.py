"""
Google Drive and Google Sheets transport over httpx.

Both adapters are built per batch with the access token for that batch
(see ``adapters.auth.refresh_if_needed``) and share one ``httpx.AsyncClient``.
All methods return ``Result``; HTTP status codes and transport exceptions are
mapped to the error taxonomy.
"""

from __future__ import annotations

import base64
import json
import math
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Sequence
from urllib.parse import quote

import httpx
from loguru import logger

from ..errors import AppError, StorageError, map_http_status, map_transport_error
from ..result import Err, Ok, Result
from ..utils import column_to_letter, escape_query
from .auth import AccessToken
from .interfaces import MIME_FOLDER, MIME_SPREADSHEET, Cell, FileInfo, SheetData

SHEET_TITLE = "Health Data"


@dataclass(frozen=True)
class GoogleEndpoints:
    drive: str = "https://www.googleapis.com/drive/v3/files"
    upload: str = "https://www.googleapis.com/upload/drive/v3/files"
    sheets: str = "https://sheets.googleapis.com/v4/spreadsheets"
    sheets_export: str = "https://docs.google.com/spreadsheets/d"


def build_file_query(name: str, mime_type: str, folder_id: Optional[str] = None) -> str:
    query = f"name='{escape_query(name)}' and mimeType='{mime_type}' and trashed=false"
    if folder_id:
        query += f" and '{escape_query(folder_id)}' in parents"
    return query


class _GoogleClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        token: AccessToken,
        endpoints: GoogleEndpoints = GoogleEndpoints(),
    ) -> None:
        self._client = client
        self._token = token
        self._urls = endpoints

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        allow_status: Sequence[int] = (),
        **kwargs: Any,
    ) -> Result[httpx.Response, AppError]:
        headers = {**self._token.header, **kwargs.pop("headers", {})}
        try:
            resp = await self._client.request(method, url, headers=headers, **kwargs)
        except Exception as e:
            error = map_transport_error(e, operation)
            logger.error(f"[Google] {operation}: {error}")
            return Err(error)

        if resp.status_code >= 400 and resp.status_code not in allow_status:
            error = map_http_status(resp.status_code, operation)
            logger.error(f"[Google] {operation}: {error}")
            return Err(error)
        return Ok(resp)

    async def _json(
        self, method: str, url: str, operation: str, **kwargs: Any
    ) -> Result[dict, AppError]:
        result = await self._request(method, url, operation, **kwargs)
        if result.is_err():
            return result
        try:
            return Ok(result.unwrap().json())
        except ValueError as e:
            return Err(StorageError(f"{operation} returned invalid JSON", "MALFORMED_RESPONSE", e))

    async def _search(self, query: str, operation: str) -> Result[Optional[FileInfo], AppError]:
        result = await self._json(
            "GET", self._urls.drive, operation, params={"q": query, "fields": "files(id,name)"}
        )
        if result.is_err():
            return result
        files = result.unwrap().get("files") or []
        if not files:
            return Ok(None)
        return Ok(FileInfo(id=files[0]["id"], name=files[0].get("name", "")))


class GoogleDriveFiles(_GoogleClient):
    """FileOperations over the Drive v3 API."""

    default_folder_name = "Health Export For AI Data"

    async def find_file(
        self, name: str, mime_type: str, folder_id: Optional[str] = None
    ) -> Result[Optional[FileInfo], AppError]:
        return await self._search(build_file_query(name, mime_type, folder_id), "find file")

    async def upload_file(
        self,
        content: str,
        name: str,
        mime_type: str,
        folder_id: Optional[str] = None,
        *,
        is_base64: bool = False,
    ) -> Result[str, AppError]:
        metadata: dict[str, Any] = {"name": name, "mimeType": mime_type}
        if folder_id:
            metadata["parents"] = [folder_id]

        boundary = f"health-export-{uuid.uuid4().hex}"
        payload = _decode_content(content, is_base64)
        body = b"".join(
            [
                f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode(),
                json.dumps(metadata).encode(),
                f"\r\n--{boundary}\r\nContent-Type: {mime_type}\r\n\r\n".encode(),
                payload,
                f"\r\n--{boundary}--".encode(),
            ]
        )
        result = await self._json(
            "POST",
            self._urls.upload,
            "upload file",
            params={"uploadType": "multipart", "fields": "id"},
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
        )
        if result.is_err():
            return result
        file_id = result.unwrap().get("id")
        if not file_id:
            return Err(StorageError("upload file returned no id", "MALFORMED_RESPONSE"))
        logger.info(f"[GoogleDrive] Created {name} ({file_id})")
        return Ok(file_id)

    async def update_file(
        self, file_id: str, content: str, mime_type: str, *, is_base64: bool = False
    ) -> Result[bool, AppError]:
        result = await self._request(
            "PATCH",
            f"{self._urls.upload}/{file_id}",
            "update file",
            params={"uploadType": "media"},
            headers={"Content-Type": mime_type},
            content=_decode_content(content, is_base64),
        )
        return result.map(lambda _: True)

    async def download_file_content(self, file_id: str) -> Result[str, AppError]:
        result = await self._request(
            "GET", f"{self._urls.drive}/{file_id}", "download file", params={"alt": "media"}
        )
        return result.map(lambda resp: resp.text)

    async def find_or_create_folder(self, name: str) -> Result[str, AppError]:
        found = await self._search(
            f"{build_file_query(name, MIME_FOLDER)} and 'root' in parents", "find folder"
        )
        if found.is_err():
            return found
        if found.unwrap() is not None:
            return Ok(found.unwrap().id)

        created = await self._json(
            "POST", self._urls.drive, "create folder", json={"name": name, "mimeType": MIME_FOLDER}
        )
        if created.is_err():
            return created
        logger.info(f"[GoogleDrive] Created folder {name}")
        return Ok(created.unwrap()["id"])

    async def check_folder_exists(self, folder_id: str) -> Result[bool, AppError]:
        result = await self._request(
            "GET",
            f"{self._urls.drive}/{folder_id}",
            "check folder",
            params={"fields": "id,trashed"},
            allow_status=(404,),
        )
        if result.is_err():
            return result
        resp = result.unwrap()
        if resp.status_code == 404:
            return Ok(False)
        return Ok(not resp.json().get("trashed", False))


class GoogleSheets(_GoogleClient):
    """SpreadsheetAdapter over the Sheets v4 API (single sheet per document)."""

    async def find_spreadsheet(
        self, name: str, folder_id: Optional[str] = None
    ) -> Result[Optional[str], AppError]:
        result = await self._search(
            build_file_query(name, MIME_SPREADSHEET, folder_id), "find spreadsheet"
        )
        return result.map(lambda info: info.id if info else None)

    async def create_spreadsheet(
        self, name: str, headers: Sequence[str], folder_id: Optional[str] = None
    ) -> Result[str, AppError]:
        body = {
            "properties": {"title": name},
            "sheets": [
                {
                    "properties": {"title": SHEET_TITLE},
                    "data": [
                        {
                            "startRow": 0,
                            "startColumn": 0,
                            "rowData": [
                                {"values": [{"userEnteredValue": {"stringValue": h}} for h in headers]}
                            ],
                        }
                    ],
                }
            ],
        }
        created = await self._json("POST", self._urls.sheets, "create spreadsheet", json=body)
        if created.is_err():
            return created
        spreadsheet_id = created.unwrap().get("spreadsheetId")
        if not spreadsheet_id:
            return Err(StorageError("create spreadsheet returned no id", "MALFORMED_RESPONSE"))

        if folder_id:
            moved = await self._move_to_folder(spreadsheet_id, folder_id)
            if moved.is_err():
                return moved
        logger.info(f"[GoogleSheets] Created {name} ({spreadsheet_id})")
        return Ok(spreadsheet_id)

    async def get_sheet_data(self, spreadsheet_id: str) -> Result[SheetData, AppError]:
        result = await self._json(
            "GET", self._values_url(spreadsheet_id, f"{SHEET_TITLE}!A:ZZ"), "get sheet data"
        )
        if result.is_err():
            return result
        values = result.unwrap().get("values") or []
        if not values:
            return Ok(SheetData())
        return Ok(SheetData(headers=list(values[0]), rows=[list(r) for r in values[1:]]))

    async def update_headers(
        self, spreadsheet_id: str, headers: Sequence[str]
    ) -> Result[bool, AppError]:
        rng = f"{SHEET_TITLE}!A1:{column_to_letter(len(headers))}1"
        result = await self._request(
            "PUT",
            self._values_url(spreadsheet_id, rng),
            "update headers",
            params={"valueInputOption": "RAW"},
            json={"values": [list(headers)]},
        )
        return result.map(lambda _: True)

    async def update_rows(
        self, spreadsheet_id: str, start_row: int, rows: Sequence[Sequence[Cell]]
    ) -> Result[bool, AppError]:
        if not rows:
            return Ok(True)
        max_columns = max(len(r) for r in rows)
        end_row = start_row + len(rows) - 1
        rng = f"{SHEET_TITLE}!A{start_row}:{column_to_letter(max_columns)}{end_row}"
        values = [[row[0], *(_numeric(v) for v in row[1:])] if row else [] for row in rows]
        result = await self._request(
            "PUT",
            self._values_url(spreadsheet_id, rng),
            "update rows",
            params={"valueInputOption": "RAW"},
            json={"values": values},
        )
        return result.map(lambda _: True)

    async def fetch_pdf(self, spreadsheet_id: str) -> Result[str, AppError]:
        result = await self._request(
            "GET",
            f"{self._urls.sheets_export}/{spreadsheet_id}/export",
            "fetch pdf",
            params={"format": "pdf", "portrait": "false", "size": "A4", "gridlines": "false"},
        )
        return result.map(lambda resp: base64.b64encode(resp.content).decode("ascii"))

    # ---------- internals ----------

    def _values_url(self, spreadsheet_id: str, rng: str) -> str:
        return f"{self._urls.sheets}/{spreadsheet_id}/values/{quote(rng, safe='!:')}"

    async def _move_to_folder(self, file_id: str, folder_id: str) -> Result[bool, AppError]:
        current = await self._json(
            "GET", f"{self._urls.drive}/{file_id}", "get parents", params={"fields": "parents"}
        )
        if current.is_err():
            return current
        previous = ",".join(current.unwrap().get("parents") or [])
        moved = await self._request(
            "PATCH",
            f"{self._urls.drive}/{file_id}",
            "move to folder",
            params={"addParents": folder_id, "removeParents": previous},
        )
        return moved.map(lambda _: True)


def _numeric(value: Cell) -> Cell:
    """Send numeric text as numbers so the sheet can compute with it."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            number = float(value)
        except ValueError:
            return value
        return number if math.isfinite(number) else value
    return value


def _decode_content(content: str, is_base64: bool) -> bytes:
    return base64.b64decode(content) if is_base64 else content.encode("utf-8")
