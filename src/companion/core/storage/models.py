"""Data models for the care companion persistence layer.

Records are frozen dataclasses: the repository produces updated copies with
``dataclasses.replace`` and writes them back, it never mutates in place.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal

PersonStatus = Literal["pending", "approved"]
MetricStatus = Literal["normal", "warning", "critical"]
MetricTrend = Literal["up", "down", "stable"]
ReportType = Literal["prescription", "report", "lab_result"]
BlobCategory = Literal["photos", "reports", "prescriptions"]

PERSON_STATUSES: tuple[str, ...] = ("pending", "approved")
METRIC_STATUSES: tuple[str, ...] = ("normal", "warning", "critical")
METRIC_TRENDS: tuple[str, ...] = ("up", "down", "stable")
REPORT_TYPES: tuple[str, ...] = ("prescription", "report", "lab_result")
# Resolution order for blob references
BLOB_CATEGORIES: tuple[str, ...] = ("photos", "reports", "prescriptions")


class _Record:
    """Dict conversion shared by all stored records."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class Person(_Record):
    """Someone the patient knows.

    ``face_encoding`` is kept in the schema for a real recognizer; nothing
    populates it yet.
    """

    id: str
    name: str
    relation: str = "Other"
    status: PersonStatus = "pending"
    notes: str | None = None
    photo: str | None = None  # local-file:// reference
    face_encoding: list[float] | None = None
    last_met: str | None = None  # ISO 8601
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class HealthMetric(_Record):
    """A single health measurement with its derived status and trend."""

    id: str
    name: str
    value: float
    unit: str = ""
    status: MetricStatus = "normal"
    trend: MetricTrend = "stable"
    target: float | None = None
    timestamp: str = ""  # ISO 8601, set once at creation


@dataclass(frozen=True)
class MedicalReport(_Record):
    """An uploaded prescription, report or lab result."""

    id: str
    title: str
    type: ReportType
    file_url: str  # local-file:// reference
    description: str | None = None
    created_at: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AppSettings(_Record):
    """Installation-wide preferences (singleton)."""

    language: str = "en"
    voice_enabled: bool = True
    notifications: bool = True
    patient_name: str = "Patient"


@dataclass(frozen=True)
class BlobRecord(_Record):
    """A stored binary payload (photo or document), base64-encoded."""

    id: str
    name: str  # original filename
    type: str  # MIME type
    data: str  # base64 payload
    timestamp: str = ""
    category: BlobCategory = "photos"

    @property
    def reference(self) -> str:
        return f"local-file://{self.id}"

    @property
    def size_bytes(self) -> int:
        """Decoded payload size, from the base64 length and padding."""
        return len(self.data) * 3 // 4 - self.data[-2:].count("=")

    @property
    def data_url(self) -> str:
        """Display URL carrying the payload inline."""
        mime = self.type or "application/octet-stream"
        return f"data:{mime};base64,{self.data}"
