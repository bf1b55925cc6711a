"""
Pydantic Schemas - Data Models

Defines the models passed between loader stages:
- AppsInstalled: one parsed log line
- FileJob: one file scheduled for processing
- FileResult: outcome of processing one file

Usage:
    from utils.schemas import AppsInstalled

    record = AppsInstalled(dev_type="idfa", dev_id="e7e1", lat=55.5, lon=42.3, apps=[1, 2])
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UINT32_MAX = 0xFFFFFFFF

FileStatus = Literal["done", "error_rate_exceeded", "unreadable"]


class AppsInstalled(BaseModel):
    """Installed apps for one device, parsed from a single log line.

    dev_type and dev_id are kept verbatim, surrounding whitespace included.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=False)

    dev_type: str = Field(..., description="Device category, e.g. idfa or gaid")
    dev_id: str = Field(..., description="Opaque device identifier")
    lat: float = Field(..., description="Latitude")
    lon: float = Field(..., description="Longitude")
    apps: list[int] = Field(default_factory=list, description="Installed app ids (uint32)")

    @property
    def key(self) -> str:
        """Store key for this record."""
        return f"{self.dev_type}:{self.dev_id}"


class FileJob(BaseModel):
    """A log file assigned to a worker, with its position in the scan order."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    path: str
    dry: bool = False


class FileResult(BaseModel):
    """Outcome of processing one log file."""

    index: int = Field(..., ge=0)
    path: str
    status: FileStatus
    total: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.failed / self.total

    @property
    def processed(self) -> bool:
        """True when every line of the file was read."""
        return self.status != "unreadable"
