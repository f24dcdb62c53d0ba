"""
Uploads Router
Batch upload endpoints: add files, analyze all, retry, remove and clear.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from legallens.core.errors import LegalLensError
from legallens.routers.auth import require_auth
from legallens.schemas.contract import UploadBatchResponse, UploadItemResponse
from legallens.schemas.domain import Contract, User
from legallens.services.ai_service import AIService, get_ai_service
from legallens.services.session_service import AppSession
from legallens.services.storage_service import StorageService, get_storage
from legallens.services.upload_service import (
    BatchUpload,
    IncomingFile,
    UploadRegistry,
    get_upload_registry,
)


router = APIRouter()


def batch_response(batch: BatchUpload, completed: Contract | None = None) -> UploadBatchResponse:
    return UploadBatchResponse(
        id=batch.id,
        items=[
            UploadItemResponse(
                id=item.id,
                file_name=item.file_name,
                mime_type=item.mime_type,
                size=item.size,
                status=item.status.value,
                error=item.error,
                contract=item.contract,
            )
            for item in batch.items
        ],
        validation_error=batch.validation_error,
        has_processing=batch.has_processing,
        all_success=batch.all_success,
        has_errors=batch.has_errors,
        completed_contract=completed,
    )


async def _read_files(files: List[UploadFile]) -> List[IncomingFile]:
    incoming = []
    for upload in files:
        incoming.append(IncomingFile(
            name=upload.filename or "document",
            mime_type=upload.content_type or "",
            data=await upload.read(),
        ))
    return incoming


def _get_batch(registry: UploadRegistry, batch_id: str, user: User) -> BatchUpload:
    batch = registry.get(batch_id, user.id)
    if not batch:
        raise HTTPException(status_code=404, detail="Upload batch not found")
    return batch


@router.post("", response_model=UploadBatchResponse)
async def create_batch(
    files: Optional[List[UploadFile]] = File(default=None),
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    """Start a batch, optionally with an initial set of files."""
    session = AppSession(storage, ai_service)
    session.resume(current_user)
    batch = registry.add(session.new_upload())
    if files:
        batch.add_files(await _read_files(files))
    return batch_response(batch)


@router.get("/{batch_id}", response_model=UploadBatchResponse)
async def get_batch(
    batch_id: str,
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    return batch_response(_get_batch(registry, batch_id, current_user))


@router.post("/{batch_id}/files", response_model=UploadBatchResponse)
async def add_files(
    batch_id: str,
    files: List[UploadFile] = File(...),
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    """Validate and append files; rejected files only set the validation error."""
    batch = _get_batch(registry, batch_id, current_user)
    batch.add_files(await _read_files(files))
    return batch_response(batch)


@router.post("/{batch_id}/analyze", response_model=UploadBatchResponse)
async def analyze_batch(
    batch_id: str,
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    """Analyze every pending or failed file concurrently."""
    batch = _get_batch(registry, batch_id, current_user)
    completed = await batch.analyze_all()
    return batch_response(batch, completed)


@router.post("/{batch_id}/items/{item_id}/retry", response_model=UploadBatchResponse)
async def retry_item(
    batch_id: str,
    item_id: str,
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    """Re-analyze a single failed file."""
    batch = _get_batch(registry, batch_id, current_user)
    try:
        await batch.retry(item_id)
    except LegalLensError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return batch_response(batch)


@router.delete("/{batch_id}/items/{item_id}", response_model=UploadBatchResponse)
async def remove_item(
    batch_id: str,
    item_id: str,
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    batch = _get_batch(registry, batch_id, current_user)
    try:
        batch.remove(item_id)
    except LegalLensError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return batch_response(batch)


@router.delete("/{batch_id}")
async def clear_batch(
    batch_id: str,
    current_user: User = Depends(require_auth),
    registry: UploadRegistry = Depends(get_upload_registry)
):
    """Drop the batch; refused while any file is processing."""
    batch = _get_batch(registry, batch_id, current_user)
    try:
        batch.clear()
    except LegalLensError as e:
        raise HTTPException(status_code=409, detail=e.message)
    registry.discard(batch_id)
    return {"success": True}
