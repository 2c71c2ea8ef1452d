"""MCP tools for health metrics, medical reports and uploaded files."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.core.storage.blob_store import BlobEncodeError, decode_upload
from companion.core.storage.validation import ValidationError
from companion.domains.care.domain_logic.metric_catalog import get_metric_catalog

if TYPE_CHECKING:
    from companion.core.storage.blob_store import FileBlobStore
    from companion.core.storage.repository import CareRepository
    from companion.domains.care.domain_logic.access import CareSession

logger = logging.getLogger(__name__)

# Report type -> blob category
_REPORT_CATEGORIES = {
    "prescription": "prescriptions",
    "report": "reports",
    "lab_result": "reports",
}


def register_health_tools(
    mcp: FastMCP,
    repository: CareRepository,
    blob_store: FileBlobStore,
    session: CareSession,
) -> None:
    """Register health metric, medical report and file tools."""

    @mcp.tool
    async def list_health_metrics(ctx: Context, name: str = "") -> str:
        """List recorded health metrics.

        Args:
            name: Optional metric name to show the history of (e.g., 'Heart Rate').
        """
        if name:
            metrics = repository.get_metric_history(name)
        else:
            metrics = repository.list_health_metrics()
        return json.dumps({
            "status": "ok",
            "count": len(metrics),
            "critical": sum(1 for m in metrics if m.status == "critical"),
            "metrics": [m.to_dict() for m in metrics],
        }, indent=2)

    @mcp.tool
    async def add_health_metric(
        ctx: Context,
        name: str,
        value: float,
        unit: str = "",
        target: float | None = None,
    ) -> str:
        """Record a health reading. Status and trend are derived automatically.

        When the metric matches a preset (see list_metric_presets) and no
        unit or target is given, the preset's unit and target are used.

        Args:
            name: Metric name (e.g., 'Heart Rate', 'Blood Sugar').
            value: Numeric reading.
            unit: Unit of measurement (e.g., 'bpm', 'mg/dL').
            target: Optional target value. Status is 'normal' within 20% of the
                target, 'warning' within 40%, otherwise 'critical'.
        """
        preset = get_metric_catalog().find_preset(name)
        if preset is not None:
            unit = unit or preset.unit
            if target is None:
                target = preset.target
        try:
            metric = repository.add_health_metric(name, value, unit, target)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "saved", "metric": metric.to_dict()})

    @mcp.tool
    async def delete_health_metric(ctx: Context, metric_id: str) -> str:
        """Delete a health reading (caregiver only).

        Args:
            metric_id: The reading's ID.
        """
        if not session.is_caregiver:
            return _forbidden()
        if not repository.delete_health_metric(metric_id):
            return json.dumps({"status": "not_found", "metric_id": metric_id})
        return json.dumps({"status": "deleted", "metric_id": metric_id})

    @mcp.tool
    async def list_metric_presets(ctx: Context) -> str:
        """List common metrics with their units and targets."""
        catalog = get_metric_catalog()
        return json.dumps({
            "status": "ok",
            "presets": [
                {"name": p.name, "unit": p.unit, "target": p.target}
                for p in catalog.presets
            ],
            "relations": list(catalog.relations),
        }, indent=2)

    # ------------------------------------------------------------------
    # Medical reports
    # ------------------------------------------------------------------

    @mcp.tool
    async def list_medical_reports(ctx: Context, tag: str = "") -> str:
        """List medical reports, prescriptions and lab results.

        Args:
            tag: Optional tag filter.
        """
        reports = repository.list_medical_reports()
        if tag:
            reports = [r for r in reports if tag in r.tags]
        return json.dumps({
            "status": "ok",
            "count": len(reports),
            "reports": [r.to_dict() for r in reports],
        }, indent=2)

    @mcp.tool
    async def add_medical_report(
        ctx: Context,
        title: str,
        report_type: str,
        file_base64: str,
        filename: str,
        mime_type: str = "application/pdf",
        description: str = "",
        tags: list[str] | None = None,
    ) -> str:
        """Upload a medical document.

        Args:
            title: Document title.
            report_type: 'prescription', 'report' or 'lab_result'.
            file_base64: The document content, base64-encoded.
            filename: Original filename.
            mime_type: MIME type of the document.
            description: Optional description.
            tags: Optional tags.
        """
        category = _REPORT_CATEGORIES.get(report_type)
        if category is None:
            return json.dumps({
                "status": "error",
                "message": "report_type must be one of prescription, report, lab_result",
            })
        try:
            if not title.strip():
                raise ValidationError("title is required")
            content = decode_upload(file_base64)
            file_url = await blob_store.save(content, filename, mime_type, category)
            report = repository.add_medical_report(
                title, report_type, file_url, description, tags or ()
            )
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "saved", "report": report.to_dict()})

    @mcp.tool
    async def delete_medical_report(ctx: Context, report_id: str) -> str:
        """Delete a medical report (caregiver only). The uploaded file is kept
        until purge_orphan_files runs.

        Args:
            report_id: The report's ID.
        """
        if not session.is_caregiver:
            return _forbidden()
        if not repository.delete_medical_report(report_id):
            return json.dumps({"status": "not_found", "report_id": report_id})
        return json.dumps({"status": "deleted", "report_id": report_id})

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @mcp.tool
    async def upload_file(
        ctx: Context,
        file_base64: str,
        filename: str,
        mime_type: str,
        category: str = "photos",
    ) -> str:
        """Store a file and return its local-file:// reference.

        Args:
            file_base64: File content, base64-encoded.
            filename: Original filename.
            mime_type: MIME type.
            category: 'photos', 'reports' or 'prescriptions'.
        """
        try:
            content = decode_upload(file_base64)
            reference = await blob_store.save(content, filename, mime_type, category)
        except (ValidationError, BlobEncodeError) as exc:
            return json.dumps({"status": "error", "message": str(exc)})
        return json.dumps({"status": "saved", "reference": reference})

    @mcp.tool
    async def get_file(ctx: Context, reference: str, include_data: bool = False) -> str:
        """Look up a stored file by its local-file:// reference.

        Args:
            reference: The reference returned when the file was stored.
            include_data: Include the display data URL (can be large).
        """
        blob = blob_store.resolve(reference)
        if blob is None:
            return json.dumps({"status": "not_found", "reference": reference})
        payload = {
            "status": "ok",
            "reference": blob.reference,
            "name": blob.name,
            "type": blob.type,
            "category": blob.category,
            "timestamp": blob.timestamp,
            "size_bytes": blob.size_bytes,
        }
        if include_data:
            payload["data_url"] = blob.data_url
        return json.dumps(payload)

    @mcp.tool
    async def purge_orphan_files(ctx: Context) -> str:
        """Delete stored files no person or report refers to (caregiver only)."""
        if not session.is_caregiver:
            return _forbidden()
        removed = blob_store.purge_orphans(repository.referenced_files())
        return json.dumps({"status": "purged", "files_deleted": removed})


def _forbidden() -> str:
    return json.dumps({
        "status": "forbidden",
        "message": "Caregiver mode is required. Unlock it with the caregiver PIN.",
    })
