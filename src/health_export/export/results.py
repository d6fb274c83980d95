from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..models import ExportFormat

PDF_FORMAT = "pdf"


@dataclass(frozen=True)
class ExportedDocument:
    """One remote document written by an exporter."""

    year: int
    file_id: str
    created: bool = False


@dataclass(frozen=True)
class FormatResult:
    format: Union[ExportFormat, str]
    success: bool
    error: Optional[str] = None
    file_id: Optional[str] = None


@dataclass
class ExportReport:
    """Per-format results of one export attempt."""

    results: list[FormatResult] = field(default_factory=list)
    folder_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return bool(self.results) and all(r.success for r in self.results)

    @property
    def errors(self) -> list[str]:
        return [f"{_name(r.format)}: {r.error}" for r in self.results if not r.success]

    @property
    def error_message(self) -> str:
        return "; ".join(self.errors)


def _name(fmt: Union[ExportFormat, str]) -> str:
    return fmt.value if isinstance(fmt, ExportFormat) else str(fmt)
