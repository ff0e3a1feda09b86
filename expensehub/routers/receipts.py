from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from expensehub.core.config import Settings
from expensehub.services.receipts import LocalReceiptStore, ReceiptFetchError
from .deps import get_app_settings

"""Receipts router.

Endpoints:
    - PUT /receipts/{receipt_id}  -> store the raw request body as a blob
    - GET /receipts/{receipt_id}  -> download a stored blob
"""

router = APIRouter(prefix="/receipts", tags=["receipts"])


def _store(settings: Settings) -> LocalReceiptStore:
    return LocalReceiptStore(settings.receipts_dir)


@router.put("/{receipt_id:path}", status_code=201, summary="Upload a receipt blob")
async def upload_receipt(
    receipt_id: str,
    request: Request,
    settings: Settings = Depends(get_app_settings),
):
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="receipt body is empty")
    if len(content) > settings.receipt_max_bytes:
        raise HTTPException(status_code=413, detail="receipt is too large")
    try:
        _store(settings).save(receipt_id, content)
    except ReceiptFetchError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"receiptId": receipt_id, "size": len(content)}


@router.get("/{receipt_id:path}", summary="Download a receipt blob")
def download_receipt(receipt_id: str, settings: Settings = Depends(get_app_settings)):
    try:
        receipt = _store(settings).fetch(receipt_id)
    except ReceiptFetchError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return Response(content=receipt.content, media_type=receipt.content_type)
