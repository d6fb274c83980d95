"""
Explicit service context.

Built once at process start and passed by reference to everything that needs
collaborators. Tests construct one from fakes instead of patching module
globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx
from loguru import logger

from .adapters.auth import AccessToken, RefreshTokenProvider, StaticTokenProvider, TokenProvider
from .adapters.google import GoogleDriveFiles, GoogleEndpoints, GoogleSheets
from .adapters.interfaces import FileOperations, SpreadsheetAdapter
from .coordinator.feedback import QueueFeedbackBus
from .coordinator.queue import QueueStore
from .network import NetworkStatusProvider, ProbeNetworkStatus
from .preferences import Preferences
from .settings import Settings, get_settings
from .storage import JsonFileStorage, KeyValueStorage

FileOpsFactory = Callable[[AccessToken], FileOperations]
SheetsFactory = Callable[[AccessToken], SpreadsheetAdapter]


@dataclass
class ServiceContext:
    storage: KeyValueStorage
    network: NetworkStatusProvider
    tokens: TokenProvider
    file_ops_factory: FileOpsFactory
    sheets_factory: SheetsFactory
    feedback: QueueFeedbackBus = field(default_factory=QueueFeedbackBus)
    settings: Settings = field(default_factory=get_settings)
    http_client: Optional[httpx.AsyncClient] = None
    queue: QueueStore = field(init=False)
    preferences: Preferences = field(init=False)

    def __post_init__(self) -> None:
        self.queue = QueueStore(self.storage)
        self.preferences = Preferences(self.storage)

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


def build_token_provider(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> TokenProvider:
    if settings.OAUTH_CLIENT_ID and settings.OAUTH_REFRESH_TOKEN:
        return RefreshTokenProvider(
            settings.OAUTH_CLIENT_ID,
            settings.OAUTH_REFRESH_TOKEN,
            client_secret=settings.OAUTH_CLIENT_SECRET,
            token_url=settings.OAUTH_TOKEN_URL,
            client=client,
        )
    return StaticTokenProvider(settings.ACCESS_TOKEN)


def build_context(settings: Optional[Settings] = None) -> ServiceContext:
    """Wire the production collaborators."""
    settings = settings or get_settings()
    client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SEC)
    endpoints = GoogleEndpoints(
        drive=settings.DRIVE_API_URL,
        upload=settings.DRIVE_UPLOAD_URL,
        sheets=settings.SHEETS_API_URL,
        sheets_export=settings.SHEETS_EXPORT_URL,
    )

    def file_ops_factory(token: AccessToken) -> FileOperations:
        files = GoogleDriveFiles(client, token, endpoints)
        files.default_folder_name = settings.DEFAULT_FOLDER_NAME
        return files

    def sheets_factory(token: AccessToken) -> SpreadsheetAdapter:
        return GoogleSheets(client, token, endpoints)

    logger.debug(f"[Context] State dir: {settings.STATE_DIR}")
    return ServiceContext(
        storage=JsonFileStorage(settings.STATE_DIR),
        network=ProbeNetworkStatus(settings.NETWORK_PROBE_URL, client=client),
        tokens=build_token_provider(settings, client),
        file_ops_factory=file_ops_factory,
        sheets_factory=sheets_factory,
        settings=settings,
        http_client=client,
    )
