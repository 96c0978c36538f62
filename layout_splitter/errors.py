"""Error types raised by the section editor and crop pipeline.

Pure operations validate and raise; the session and window layers catch,
log, and turn failures into visible state. Nothing here should end an
editing session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class LayoutSplitterError(Exception):
    """Base class for all project errors."""


class GeometryError(LayoutSplitterError):
    """Natural image size is unavailable or unusable; editing is blocked until retry."""


class CutLineBusyError(LayoutSplitterError):
    """A drag is already active on the cut-line array."""


class ApiError(LayoutSplitterError):
    """A collaborator request failed (transport, non-2xx, or `success: false`)."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        url: str | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url
        self.body = body


class CropGenerationFailure(ApiError):
    """A crop batch failed. `assets` keeps whatever was produced before the failure."""

    def __init__(
        self,
        message: str,
        *,
        assets: list[Any] | None = None,
        status: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message, status=status, url=url)
        self.assets = list(assets or [])


class SigningFailure(ApiError):
    """A single asset's signed URL could not be produced."""

    def __init__(self, key: str, message: str, *, status: int | None = None, url: str | None = None) -> None:
        super().__init__(message, status=status, url=url)
        self.key = key


@dataclass(frozen=True)
class DegenerateCropWarning:
    """Non-blocking warning: thin crops survived the single corrective pass."""

    thin_keys: tuple[str, ...] = field(default_factory=tuple)
    thin_count: int = 0
    section_count: int = 0

    @property
    def message(self) -> str:
        return (
            f"{self.thin_count} of {self.section_count} crops are still thinner than expected; "
            "check the section bounds"
        )
