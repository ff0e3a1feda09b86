from fastapi import APIRouter, Depends
from fastapi.responses import Response

from expensehub.models.export import ExportRequest
from expensehub.services.export_service import ExportFile, ExportService
from .deps import get_export_service

router = APIRouter(prefix="/export", tags=["export"])


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# Sync handlers: receipt fetching blocks, so these run in the threadpool.
@router.post("/spreadsheet", summary="Export reports to a multi-currency spreadsheet")
def export_spreadsheet(
    payload: ExportRequest, svc: ExportService = Depends(get_export_service)
):
    return _download(svc.export_spreadsheet(payload.report_ids, payload.target_currency))


@router.post("/archive", summary="Export spreadsheet plus receipts as a zip archive")
def export_archive(
    payload: ExportRequest, svc: ExportService = Depends(get_export_service)
):
    return _download(
        svc.export_archive_with_receipts(payload.report_ids, payload.target_currency)
    )


@router.post("", summary="Export, bundling receipts when requested")
def export(payload: ExportRequest, svc: ExportService = Depends(get_export_service)):
    if payload.include_receipts:
        return export_archive(payload, svc)
    return export_spreadsheet(payload, svc)
