"""Care repository — typed CRUD over the record store collections.

The repository mediates between domain records (Person, HealthMetric, etc.)
and the RecordStore. Every write is a single read-modify-write of one
collection; a failed store write propagates as StorageError and nothing is
reported as saved.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Sequence, TypeVar

from companion.core.storage.models import (
    PERSON_STATUSES,
    REPORT_TYPES,
    AppSettings,
    HealthMetric,
    MedicalReport,
    Person,
)
from companion.core.storage.record_store import RecordStore, StorageError
from companion.core.storage.validation import (
    ValidationError,
    parse_number,
    parse_optional_number,
    require_choice,
    require_text,
)
from companion.domains.care.domain_logic.metric_catalog import default_metrics
from companion.domains.care.domain_logic.metric_classifier import (
    PreviousReadingTrendEstimator,
    TrendEstimator,
    classify_status,
)

logger = logging.getLogger(__name__)

# Collection names (namespaced by the record store)
PEOPLE = "people"
HEALTH_METRICS = "health-metrics"
MEDICAL_REPORTS = "medical-reports"
SETTINGS = "settings"

_R = TypeVar("_R", Person, HealthMetric, MedicalReport)

_PERSON_MUTABLE = {"name", "relation", "notes", "photo", "face_encoding", "last_met"}
_METRIC_MUTABLE = {"name", "value", "unit", "target"}
_REPORT_MUTABLE = {"title", "type", "file_url", "description", "tags"}
_SETTINGS_FIELDS = {"language", "voice_enabled", "notifications", "patient_name"}


class CareRepository:
    """CRUD repository for people, health metrics, medical reports and settings.

    Usage::

        db = CompanionDatabase(":memory:")
        db.initialize()
        repo = CareRepository(RecordStore(db))

        person = repo.add_person("Ana", relation="Daughter", approved=True)
        repo.update_person(person.id, notes="Visits on Sundays")
        repo.delete_person(person.id)  # True
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        trend_estimator: TrendEstimator | None = None,
    ) -> None:
        self._store = store
        self._trend = trend_estimator or PreviousReadingTrendEstimator()

    @property
    def store(self) -> RecordStore:
        return self._store

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    @classmethod
    def _next_timestamp(cls, previous: str) -> str:
        """Current time, nudged past ``previous`` so updated_at strictly increases."""
        now = datetime.now(timezone.utc)
        try:
            prev = datetime.fromisoformat(previous)
        except (TypeError, ValueError):
            return now.isoformat()
        if prev.tzinfo is None:
            prev = prev.replace(tzinfo=timezone.utc)
        if now <= prev:
            now = prev + timedelta(microseconds=1)
        return now.isoformat()

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def list_people(self, status: str | None = None) -> list[Person]:
        """List people in insertion order, optionally filtered by status."""
        people = self._load(PEOPLE, Person)
        if status is not None:
            require_choice(status, PERSON_STATUSES, "status")
            people = [p for p in people if p.status == status]
        return people

    def get_person(self, person_id: str) -> Person | None:
        return next((p for p in self._load(PEOPLE, Person) if p.id == person_id), None)

    def add_person(
        self,
        name: str,
        relation: str = "",
        notes: str = "",
        photo: str = "",
        *,
        approved: bool = False,
    ) -> Person:
        """Create a person.

        Args:
            name: Display name (required).
            relation: Relationship to the patient; blank becomes "Other".
            notes: Free-text notes.
            photo: ``local-file://`` reference from the blob store.
            approved: True when a caregiver adds the person; patient-added
                people start out pending approval.

        Raises:
            ValidationError: If the name is empty.
        """
        name = require_text(name, "name")
        now = self._now_iso()
        person = Person(
            id=self._new_id(),
            name=name,
            relation=(relation or "").strip() or "Other",
            status="approved" if approved else "pending",
            notes=(notes or "").strip() or None,
            photo=photo or None,
            created_at=now,
            updated_at=now,
        )
        people = self._load(PEOPLE, Person)
        people.append(person)
        self._save(PEOPLE, people)
        logger.info("Added person %s (status=%s)", person.id, person.status)
        return person

    def update_person(self, person_id: str, **changes: Any) -> Person | None:
        """Merge ``changes`` into a person and refresh updated_at.

        ``status`` is not accepted here; see :meth:`set_person_status`.

        Returns:
            The merged record, or None if no person has that id.

        Raises:
            ValidationError: On unknown or protected fields or an empty name.
        """
        _check_fields(changes, _PERSON_MUTABLE, "person")
        if "name" in changes:
            changes["name"] = require_text(changes["name"], "name")
        if "relation" in changes:
            changes["relation"] = (changes["relation"] or "").strip() or "Other"
        if changes.get("face_encoding") is not None:
            changes["face_encoding"] = [
                parse_number(v, "face_encoding") for v in changes["face_encoding"]
            ]
        return self._merge_person(person_id, changes)

    def set_person_status(self, person_id: str, status: str) -> Person | None:
        """Change a person's approval status. Reserved for the approval workflow."""
        require_choice(status, PERSON_STATUSES, "status")
        return self._merge_person(person_id, {"status": status})

    def delete_person(self, person_id: str) -> bool:
        """Remove a person. Returns False if no person has that id.

        The person's photo blob is left in place.
        """
        removed = self._remove(PEOPLE, Person, person_id)
        if removed:
            logger.info("Deleted person %s", person_id)
        return removed

    def search_people(self, term: str = "", status: str | None = None) -> list[Person]:
        """Case-insensitive match on name, relation or notes."""
        people = self.list_people(status)
        needle = (term or "").strip().lower()
        if not needle:
            return people
        return [
            p for p in people
            if needle in p.name.lower()
            or needle in p.relation.lower()
            or needle in (p.notes or "").lower()
        ]

    def count_people_by_status(self) -> dict[str, int]:
        people = self._load(PEOPLE, Person)
        counts = {status: 0 for status in PERSON_STATUSES}
        for person in people:
            counts[person.status] = counts.get(person.status, 0) + 1
        counts["total"] = len(people)
        return counts

    def _merge_person(self, person_id: str, changes: dict[str, Any]) -> Person | None:
        def apply(person: Person) -> Person:
            return replace(
                person, **changes, updated_at=self._next_timestamp(person.updated_at)
            )

        return self._update(PEOPLE, Person, person_id, apply)

    # ------------------------------------------------------------------
    # Health metrics
    # ------------------------------------------------------------------

    def list_health_metrics(self) -> list[HealthMetric]:
        """List readings in insertion order.

        Until the collection is first written this returns the starter set
        from the metric catalog; the starter set is not persisted by reading.
        """
        if not self._store.contains(HEALTH_METRICS):
            return default_metrics()
        return self._load(HEALTH_METRICS, HealthMetric)

    def add_health_metric(
        self,
        name: str,
        value: Any,
        unit: str = "",
        target: Any = None,
    ) -> HealthMetric:
        """Record a reading with derived status and trend.

        ``value`` and ``target`` may be numbers or numeric strings; a blank
        target means no target.

        Raises:
            ValidationError: On an empty name, non-numeric value/target or a
                zero target.
        """
        name = require_text(name, "name")
        value = parse_number(value, "value")
        target = parse_optional_number(target, "target")
        status = classify_status(value, target)

        metrics = self.list_health_metrics()
        metric = HealthMetric(
            id=self._new_id(),
            name=name,
            value=value,
            unit=(unit or "").strip(),
            status=status,
            trend=self._trend.estimate(name, value, metrics),
            target=target,
            timestamp=self._now_iso(),
        )
        metrics.append(metric)
        self._write_metrics(metrics)
        logger.info("Added health metric %s (status=%s, trend=%s)", metric.id, status, metric.trend)
        return metric

    def update_health_metric(self, metric_id: str, **changes: Any) -> HealthMetric | None:
        """Merge ``changes`` into a reading, re-deriving its status.

        The timestamp and trend are kept.
        """
        _check_fields(changes, _METRIC_MUTABLE, "health metric")
        if "name" in changes:
            changes["name"] = require_text(changes["name"], "name")
        if "value" in changes:
            changes["value"] = parse_number(changes["value"], "value")
        if "target" in changes:
            changes["target"] = parse_optional_number(changes["target"], "target")
        if "unit" in changes:
            changes["unit"] = (changes["unit"] or "").strip()

        metrics = self.list_health_metrics()
        index = _index_of(metrics, metric_id)
        if index is None:
            return None
        merged = replace(metrics[index], **changes)
        merged = replace(merged, status=classify_status(merged.value, merged.target))
        metrics[index] = merged
        self._write_metrics(metrics)
        return merged

    def delete_health_metric(self, metric_id: str) -> bool:
        metrics = self.list_health_metrics()
        remaining = [m for m in metrics if m.id != metric_id]
        if len(remaining) == len(metrics):
            return False
        self._write_metrics(remaining)
        return True

    def get_metric_history(self, name: str) -> list[HealthMetric]:
        """All readings for one metric name (case-insensitive), oldest first."""
        key = name.strip().lower()
        return [m for m in self.list_health_metrics() if m.name.strip().lower() == key]

    def _write_metrics(self, metrics: Sequence[HealthMetric]) -> None:
        self._store.write(HEALTH_METRICS, [m.to_dict() for m in metrics])

    # ------------------------------------------------------------------
    # Medical reports
    # ------------------------------------------------------------------

    def list_medical_reports(self) -> list[MedicalReport]:
        return self._load(MEDICAL_REPORTS, MedicalReport)

    def add_medical_report(
        self,
        title: str,
        type: str,
        file_url: str,
        description: str = "",
        tags: Iterable[str] = (),
    ) -> MedicalReport:
        report = MedicalReport(
            id=self._new_id(),
            title=require_text(title, "title"),
            type=require_choice(type, REPORT_TYPES, "type"),
            file_url=require_text(file_url, "file_url"),
            description=(description or "").strip() or None,
            created_at=self._now_iso(),
            tags=_clean_tags(tags),
        )
        reports = self.list_medical_reports()
        reports.append(report)
        self.save_medical_reports(reports)
        logger.info("Added medical report %s (type=%s)", report.id, report.type)
        return report

    def update_medical_report(self, report_id: str, **changes: Any) -> MedicalReport | None:
        _check_fields(changes, _REPORT_MUTABLE, "medical report")
        if "title" in changes:
            changes["title"] = require_text(changes["title"], "title")
        if "type" in changes:
            require_choice(changes["type"], REPORT_TYPES, "type")
        if "file_url" in changes:
            changes["file_url"] = require_text(changes["file_url"], "file_url")
        if "tags" in changes:
            changes["tags"] = _clean_tags(changes["tags"] or ())
        return self._update(
            MEDICAL_REPORTS, MedicalReport, report_id, lambda r: replace(r, **changes)
        )

    def delete_medical_report(self, report_id: str) -> bool:
        return self._remove(MEDICAL_REPORTS, MedicalReport, report_id)

    def save_medical_reports(self, reports: Sequence[MedicalReport]) -> None:
        """Replace the whole report collection."""
        self._save(MEDICAL_REPORTS, reports)

    # ------------------------------------------------------------------
    # App settings (singleton)
    # ------------------------------------------------------------------

    def get_app_settings(self) -> AppSettings:
        raw = self._store.get(SETTINGS)
        if raw is None:
            return AppSettings()
        if not isinstance(raw, dict):
            raise StorageError(
                f"Corrupt record in {SETTINGS!r}: expected an object, got {type(raw).__name__}"
            )
        return _decode(SETTINGS, AppSettings, raw)

    def save_app_settings(self, settings: AppSettings) -> None:
        self._store.write(SETTINGS, settings.to_dict())

    def update_app_settings(self, **changes: Any) -> AppSettings:
        _check_fields(changes, _SETTINGS_FIELDS, "settings")
        for key in ("language", "patient_name"):
            if key in changes:
                changes[key] = require_text(changes[key], key)
        for key in ("voice_enabled", "notifications"):
            if key in changes and not isinstance(changes[key], bool):
                raise ValidationError(f"{key} must be true or false")
        settings = replace(self.get_app_settings(), **changes)
        self.save_app_settings(settings)
        return settings

    # ------------------------------------------------------------------
    # Blob references
    # ------------------------------------------------------------------

    def referenced_files(self) -> set[str]:
        """Blob references still held by a person photo or a medical report."""
        refs = {p.photo for p in self._load(PEOPLE, Person) if p.photo}
        refs.update(r.file_url for r in self.list_medical_reports() if r.file_url)
        return refs

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, collection: str, model: type[_R]) -> list[_R]:
        return [
            _decode(collection, model, item)
            for item in self._store.read_entries(collection)
        ]

    def _save(self, collection: str, records: Sequence[_R]) -> None:
        self._store.write(collection, [r.to_dict() for r in records])

    def _update(
        self,
        collection: str,
        model: type[_R],
        record_id: str,
        apply: Callable[[_R], _R],
    ) -> _R | None:
        records = self._load(collection, model)
        index = _index_of(records, record_id)
        if index is None:
            return None
        records[index] = apply(records[index])
        self._save(collection, records)
        return records[index]

    def _remove(self, collection: str, model: type[_R], record_id: str) -> bool:
        records = self._load(collection, model)
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self._save(collection, remaining)
        return True


def _index_of(records: Sequence[Any], record_id: str) -> int | None:
    for i, record in enumerate(records):
        if record.id == record_id:
            return i
    return None


def _check_fields(changes: dict[str, Any], allowed: set[str], kind: str) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationError(f"Cannot update {kind} field(s): {', '.join(unknown)}")


def _clean_tags(tags: Iterable[str]) -> list[str]:
    if isinstance(tags, str):
        raise ValidationError("tags must be a list of strings")
    return [t.strip() for t in tags if isinstance(t, str) and t.strip()]


def _decode(collection: str, model: type, item: dict[str, Any]) -> Any:
    try:
        return model.from_dict(item)
    except (TypeError, AttributeError, KeyError) as exc:
        raise StorageError(f"Corrupt record in {collection!r}: {exc}") from exc
