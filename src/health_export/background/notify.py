"""
Completion notices for background runs.

Only runs that produced new data notify; no-op runs stay silent.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger

MESSAGES = {
    "en": {
        "sync_success": "Sync Complete",
        "sync_success_body": "Data backup completed",
        "sync_error": "Sync Error",
        "sync_error_body": "An error occurred during sync",
    },
    "ja": {
        "sync_success": "同期完了",
        "sync_success_body": "データのバックアップが完了しました",
        "sync_error": "同期エラー",
        "sync_error_body": "同期中にエラーが発生しました",
    },
}


def completion_message(language: str) -> tuple[str, str]:
    texts = MESSAGES.get(language, MESSAGES["en"])
    return texts["sync_success"], texts["sync_success_body"]


class Notifier(Protocol):
    async def notify(self, title: str, body: str) -> None: ...


class LogNotifier:
    """Writes notices to the log. Used when the host has no notification surface."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))
        logger.info(f"[Notify] {title}: {body}")
