"""
Upload Service
Batch upload orchestration: validation on add, concurrent per-file analysis,
per-file status tracking, selective retry and single-file navigation.
"""

import asyncio
import base64
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from legallens.config import Settings, get_settings
from legallens.core.errors import LegalLensError, StorageError, UploadStateError, classify_error
from legallens.schemas.domain import (
    CamelModel,
    Contract,
    ContractStatus,
    RecentAnalysis,
    User,
    now_ms,
)
from legallens.services.ai_service import AIService
from legallens.services.storage_service import StorageService


logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = (
    "Analyzed successfully but failed to save to storage. Check available disk space."
)
UNEXPECTED_FAILURE_MESSAGE = "Failed to analyze due to an unexpected error."


class UploadStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class IncomingFile:
    """A file as received from the client, before validation."""
    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class UploadItem(CamelModel):
    """One file in a batch. Immutable; every change yields a new item."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file_name: str
    mime_type: str
    size: int
    status: UploadStatus = UploadStatus.PENDING
    error: Optional[str] = None
    contract: Optional[Contract] = None
    data: bytes = Field(default=b"", exclude=True, repr=False)


def encode_file(data: bytes) -> str:
    return base64.standard_b64encode(data).decode("ascii")


def validate_upload(file: IncomingFile, settings: Settings) -> Optional[str]:
    """Return a user-facing message when the file is rejected, else None."""
    if file.mime_type not in settings.allowed_mime_types:
        return f'File "{file.name}" has an invalid format. Please upload PDF or Images.'
    if file.size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        return f'File "{file.name}" is too large (>{limit_mb}MB).'
    return None


class BatchUpload:
    """
    A set of files moving through pending -> processing -> success | error.

    The item list is only ever replaced as a whole so interleaved async
    completions cannot lose each other's updates.
    """

    def __init__(
        self,
        user: User,
        ai_service: AIService,
        storage: StorageService,
        settings: Optional[Settings] = None,
        on_complete: Optional[Callable[[Contract], Any]] = None,
    ):
        self.id = uuid.uuid4().hex
        self.user = user
        self.ai_service = ai_service
        self.storage = storage
        self.settings = settings or get_settings()
        self.on_complete = on_complete
        self.validation_error: Optional[str] = None
        self._items: tuple = ()

    @property
    def items(self) -> List[UploadItem]:
        return list(self._items)

    @property
    def has_processing(self) -> bool:
        return any(item.status == UploadStatus.PROCESSING for item in self._items)

    @property
    def all_success(self) -> bool:
        return bool(self._items) and all(item.status == UploadStatus.SUCCESS for item in self._items)

    @property
    def has_errors(self) -> bool:
        return any(item.status == UploadStatus.ERROR for item in self._items)

    def get_item(self, item_id: str) -> Optional[UploadItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def add_files(self, files: Iterable[IncomingFile]) -> List[UploadItem]:
        """Validate and append files. Only the last rejection message is kept."""
        accepted: List[UploadItem] = []
        file_error: Optional[str] = None

        for file in files:
            message = validate_upload(file, self.settings)
            if message:
                logger.info("Rejected upload: %s", message)
                file_error = message
                continue
            accepted.append(UploadItem(
                file_name=file.name,
                mime_type=file.mime_type,
                size=file.size,
                data=file.data,
            ))

        self.validation_error = file_error
        if accepted:
            self._items = (*self._items, *accepted)
        return accepted

    def remove(self, item_id: str) -> None:
        item = self.get_item(item_id)
        if item is None:
            raise UploadStateError(f"Unknown upload item: {item_id}")
        if item.status not in (UploadStatus.PENDING, UploadStatus.ERROR):
            raise UploadStateError(f'"{item.file_name}" cannot be removed while {item.status.value}.')

        self._items = tuple(i for i in self._items if i.id != item_id)
        if not self._items:
            self.validation_error = None

    def clear(self) -> None:
        if self.has_processing:
            raise UploadStateError("Cannot clear the batch while files are processing.")
        self._items = ()
        self.validation_error = None

    async def analyze_all(self) -> Optional[Contract]:
        """
        Analyze every pending or failed file concurrently.

        All targets flip to processing before any request starts; results are
        applied together once every request has settled. Returns the new
        contract when the batch held exactly one file and it succeeded.
        """
        batch_size = len(self._items)
        targets = [i for i in self._items if i.status in (UploadStatus.PENDING, UploadStatus.ERROR)]
        target_ids = {i.id for i in targets}

        self._items = tuple(
            i.model_copy(update={"status": UploadStatus.PROCESSING, "error": None})
            if i.id in target_ids else i
            for i in self._items
        )

        results = await asyncio.gather(*(self._process(item) for item in targets))
        self._apply({result.id: result for result in results})

        if batch_size == 1 and len(results) == 1:
            result = results[0]
            if result.status == UploadStatus.SUCCESS and result.contract:
                if self.on_complete:
                    self.on_complete(result.contract)
                return result.contract
        return None

    async def retry(self, item_id: str) -> UploadItem:
        """Re-analyze a single failed file, leaving the others untouched."""
        item = self.get_item(item_id)
        if item is None:
            raise UploadStateError(f"Unknown upload item: {item_id}")
        if item.status != UploadStatus.ERROR:
            raise UploadStateError(f'"{item.file_name}" is {item.status.value}, only failed files can be retried.')

        self._apply({item_id: item.model_copy(update={"status": UploadStatus.PROCESSING, "error": None})})
        result = await self._process(item)
        self._apply({item_id: result})
        return result

    def _apply(self, updates: Dict[str, UploadItem]) -> None:
        self._items = tuple(updates.get(i.id, i) for i in self._items)

    async def _process(self, item: UploadItem) -> UploadItem:
        """Analyze, save and cache one file. Never raises."""
        try:
            file_data = await asyncio.to_thread(encode_file, item.data)
            analysis = await self.ai_service.analyze_document(item.data, item.mime_type)
        except LegalLensError as e:
            logger.error("Error processing file %s: %s", item.file_name, e.message)
            return self._failed(item, e.message)
        except Exception as e:
            logger.exception("Error processing file %s", item.file_name)
            return self._failed(item, classify_error(e).message or UNEXPECTED_FAILURE_MESSAGE)

        contract = Contract(
            id=uuid.uuid4().hex[:13],
            user_id=self.user.id,
            file_name=item.file_name,
            upload_date=now_ms(),
            status=ContractStatus.ANALYZED,
            analysis=analysis,
            file_data=file_data,
            mime_type=item.mime_type,
        )

        try:
            await self.storage.save_contract(contract)
        except StorageError:
            # Result is kept on the item so the analysis stays viewable
            return item.model_copy(update={
                "status": UploadStatus.ERROR,
                "error": SAVE_FAILED_MESSAGE,
                "contract": contract,
            })

        self.storage.save_recent_analysis(self.user.id, RecentAnalysis.from_contract(contract))
        # Succeeded items are never re-analyzed; the contract keeps its own file copy
        return item.model_copy(update={
            "status": UploadStatus.SUCCESS,
            "error": None,
            "contract": contract,
            "data": b"",
        })

    @staticmethod
    def _failed(item: UploadItem, message: str) -> UploadItem:
        return item.model_copy(update={
            "status": UploadStatus.ERROR,
            "error": message,
            "contract": None,
        })


class UploadRegistry:
    """
    In-memory batches keyed by id, scoped to their owner.

    Each user keeps at most max_per_user batches; adding another evicts that
    user's oldest batches unless they are still processing.
    """

    def __init__(self, max_per_user: Optional[int] = None):
        self.max_per_user = max(1, max_per_user or get_settings().upload_batches_per_user)
        self._batches: Dict[str, BatchUpload] = {}

    def add(self, batch: BatchUpload) -> BatchUpload:
        self._batches[batch.id] = batch
        self._evict(batch.user.id)
        return batch

    def get(self, batch_id: str, user_id: str) -> Optional[BatchUpload]:
        batch = self._batches.get(batch_id)
        if batch is None or batch.user.id != user_id:
            return None
        return batch

    def batches_for(self, user_id: str) -> List[BatchUpload]:
        return [b for b in self._batches.values() if b.user.id == user_id]

    def discard(self, batch_id: str) -> None:
        self._batches.pop(batch_id, None)

    def _evict(self, user_id: str) -> None:
        owned = self.batches_for(user_id)
        for stale in owned[:max(0, len(owned) - self.max_per_user)]:
            if not stale.has_processing:
                logger.info("Evicting upload batch %s for %s", stale.id, user_id)
                self.discard(stale.id)


upload_registry = UploadRegistry()


def get_upload_registry() -> UploadRegistry:
    return upload_registry
