from .auth import AccessToken, RefreshTokenProvider, StaticTokenProvider, TokenProvider, refresh_if_needed
from .google import GoogleDriveFiles, GoogleEndpoints, GoogleSheets, build_file_query
from .interfaces import FileInfo, FileOperations, SheetData, SpreadsheetAdapter

__all__ = [
    "AccessToken",
    "TokenProvider",
    "StaticTokenProvider",
    "RefreshTokenProvider",
    "refresh_if_needed",
    "FileInfo",
    "SheetData",
    "FileOperations",
    "SpreadsheetAdapter",
    "GoogleDriveFiles",
    "GoogleSheets",
    "GoogleEndpoints",
    "build_file_query",
]
