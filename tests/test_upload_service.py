import asyncio

import pytest

from conftest import analysis_json, document_bytes
from legallens.core.errors import StorageError, UploadStateError
from legallens.schemas.domain import ContractStatus
from legallens.services.storage_service import StorageService
from legallens.services.upload_service import (
    SAVE_FAILED_MESSAGE,
    BatchUpload,
    IncomingFile,
    UploadRegistry,
    UploadStatus,
)


def pdf(name, data=b"%PDF-1.4 ok"):
    return IncomingFile(name=name, mime_type="application/pdf", data=data)


def fail_on(bad_data, error=None):
    """Responder that fails analysis for one document and succeeds for the rest."""
    def respond(call):
        if document_bytes(call) == bad_data:
            return error or RuntimeError("Error code: 429 - rate limit")
        return analysis_json()
    return respond


class BrokenStorage(StorageService):
    async def save_contract(self, contract):
        raise StorageError("database or disk is full")


@pytest.fixture
def batch(user, ai_service, storage, settings):
    return BatchUpload(user, ai_service, storage, settings)


class TestAddFiles:
    def test_invalid_format_is_rejected(self, batch):
        batch.add_files([
            IncomingFile(name="notes.txt", mime_type="text/plain", data=b"hi"),
            pdf("lease.pdf"),
        ])

        assert [i.file_name for i in batch.items] == ["lease.pdf"]
        assert batch.validation_error == 'File "notes.txt" has an invalid format. Please upload PDF or Images.'

    def test_oversized_file_is_rejected(self, batch):
        batch.add_files([pdf("huge.pdf", b"x" * (20 * 1024 * 1024 + 1))])

        assert batch.items == []
        assert batch.validation_error == 'File "huge.pdf" is too large (>20MB).'

    def test_only_last_rejection_is_kept(self, batch):
        batch.add_files([
            IncomingFile(name="a.txt", mime_type="text/plain", data=b"a"),
            IncomingFile(name="b.doc", mime_type="application/msword", data=b"b"),
        ])
        assert batch.validation_error.startswith('File "b.doc"')

    def test_clean_add_clears_error(self, batch):
        batch.add_files([IncomingFile(name="a.txt", mime_type="text/plain", data=b"a")])
        batch.add_files([pdf("lease.pdf")])
        assert batch.validation_error is None

    def test_new_items_are_pending(self, batch):
        batch.add_files([pdf("lease.pdf"), pdf("nda.pdf")])
        assert [i.status for i in batch.items] == [UploadStatus.PENDING] * 2
        assert batch.items[0].id != batch.items[1].id


class TestAnalyzeAll:
    async def test_single_file_success_navigates(self, user, ai_service, storage, settings, fake_client):
        fake_client.messages.default = analysis_json()
        opened = []
        batch = BatchUpload(user, ai_service, storage, settings, on_complete=opened.append)
        batch.add_files([pdf("lease.pdf")])

        contract = await batch.analyze_all()

        assert contract is not None
        assert opened == [contract]
        assert contract.status == ContractStatus.ANALYZED
        assert contract.user_id == user.id
        assert len(contract.id) == 13
        assert batch.all_success
        assert storage.get_contract(user.id, contract.id) == contract
        assert storage.get_recent_analyses(user.id)[0].id == contract.id

    async def test_one_failure_does_not_block_others(self, batch, storage, user, fake_client):
        fake_client.messages.responder = fail_on(b"bad")
        batch.add_files([pdf("a.pdf", b"good-a"), pdf("b.pdf", b"bad"), pdf("c.pdf", b"good-c")])

        assert await batch.analyze_all() is None

        statuses = {i.file_name: i.status for i in batch.items}
        assert statuses == {
            "a.pdf": UploadStatus.SUCCESS,
            "b.pdf": UploadStatus.ERROR,
            "c.pdf": UploadStatus.SUCCESS,
        }
        failed = batch.items[1]
        assert failed.error == "AI usage limit exceeded. Please try again in a few moments."
        assert failed.contract is None
        assert batch.has_errors and not batch.all_success
        assert len(storage.get_contracts(user.id)) == 2

    async def test_every_target_is_processing_before_any_result(self, batch, fake_client, gate):
        fake_client.messages.default = analysis_json()
        fake_client.messages.gate = gate
        batch.add_files([pdf("a.pdf", b"a"), pdf("b.pdf", b"b")])

        task = asyncio.create_task(batch.analyze_all())
        await asyncio.sleep(0)

        assert [i.status for i in batch.items] == [UploadStatus.PROCESSING] * 2
        assert batch.has_processing

        gate.set()
        await task
        assert batch.all_success

    async def test_successful_items_are_not_reanalyzed(self, batch, fake_client):
        fake_client.messages.responder = fail_on(b"bad")
        batch.add_files([pdf("a.pdf", b"good"), pdf("b.pdf", b"bad")])
        await batch.analyze_all()

        fake_client.messages.responder = None
        fake_client.messages.default = analysis_json()
        await batch.analyze_all()

        assert len(fake_client.messages.calls) == 3
        assert batch.all_success

    async def test_save_failure_keeps_analysis(self, user, ai_service, store, settings, fake_client):
        fake_client.messages.default = analysis_json()
        storage = BrokenStorage(store, recent_limit=10)
        batch = BatchUpload(user, ai_service, storage, settings)
        batch.add_files([pdf("lease.pdf")])

        assert await batch.analyze_all() is None

        item = batch.items[0]
        assert item.status == UploadStatus.ERROR
        assert item.error == SAVE_FAILED_MESSAGE
        assert item.contract is not None
        assert item.contract.analysis.risk_score == 55
        assert storage.get_recent_analyses(user.id) == []


class TestRetry:
    async def test_retry_only_touches_the_failed_item(self, batch, fake_client):
        fake_client.messages.responder = fail_on(b"bad")
        batch.add_files([pdf("a.pdf", b"good"), pdf("b.pdf", b"bad")])
        await batch.analyze_all()
        succeeded, failed = batch.items

        fake_client.messages.responder = None
        fake_client.messages.default = analysis_json()
        result = await batch.retry(failed.id)

        assert result.status == UploadStatus.SUCCESS
        assert len(fake_client.messages.calls) == 3
        assert batch.items[0] == succeeded
        assert batch.all_success

    async def test_retry_refused_for_successful_item(self, batch, fake_client):
        fake_client.messages.default = analysis_json()
        batch.add_files([pdf("a.pdf")])
        await batch.analyze_all()

        with pytest.raises(UploadStateError):
            await batch.retry(batch.items[0].id)

    async def test_retry_unknown_item(self, batch):
        with pytest.raises(UploadStateError):
            await batch.retry("missing")


class TestRemoveAndClear:
    def test_remove_pending_item(self, batch):
        batch.add_files([pdf("a.pdf"), pdf("b.pdf")])
        batch.remove(batch.items[0].id)
        assert [i.file_name for i in batch.items] == ["b.pdf"]

    def test_removing_last_item_clears_error(self, batch):
        batch.add_files([pdf("a.pdf")])
        batch.add_files([IncomingFile(name="x.txt", mime_type="text/plain", data=b"x")])
        assert batch.validation_error

        batch.remove(batch.items[0].id)

        assert batch.items == []
        assert batch.validation_error is None

    async def test_remove_and_clear_refused_while_processing(self, batch, fake_client, gate):
        fake_client.messages.default = analysis_json()
        fake_client.messages.gate = gate
        batch.add_files([pdf("a.pdf")])

        task = asyncio.create_task(batch.analyze_all())
        await asyncio.sleep(0)

        with pytest.raises(UploadStateError):
            batch.remove(batch.items[0].id)
        with pytest.raises(UploadStateError):
            batch.clear()

        gate.set()
        await task
        batch.clear()
        assert batch.items == []

    async def test_remove_refused_after_success(self, batch, fake_client):
        fake_client.messages.default = analysis_json()
        batch.add_files([pdf("a.pdf")])
        await batch.analyze_all()

        with pytest.raises(UploadStateError):
            batch.remove(batch.items[0].id)


def test_registry_is_scoped_to_owner(user, ai_service, storage):
    registry = UploadRegistry()
    batch = registry.add(BatchUpload(user, ai_service, storage))

    assert registry.get(batch.id, user.id) is batch
    assert registry.get(batch.id, "mallory@example.com") is None

    registry.discard(batch.id)
    assert registry.get(batch.id, user.id) is None


async def test_succeeded_items_release_file_data(batch, fake_client):
    fake_client.messages.responder = fail_on(b"bad")
    batch.add_files([pdf("a.pdf", b"good-a"), pdf("b.pdf", b"bad")])

    await batch.analyze_all()

    good, bad = batch.items
    assert good.status == UploadStatus.SUCCESS
    assert good.data == b""
    assert good.contract.file_data
    assert bad.data == b"bad"


def test_registry_evicts_oldest_batches_per_user(user, ai_service, storage, settings):
    bob = user.model_copy(update={"id": "bob@example.com", "email": "bob@example.com"})
    registry = UploadRegistry(max_per_user=2)

    bobs = registry.add(BatchUpload(bob, ai_service, storage, settings))
    first, second, third = (registry.add(BatchUpload(user, ai_service, storage, settings)) for _ in range(3))

    assert registry.batches_for(user.id) == [second, third]
    assert registry.get(first.id, user.id) is None
    assert registry.get(bobs.id, bob.id) is bobs


async def test_registry_keeps_processing_batches(user, ai_service, storage, settings, fake_client, gate):
    fake_client.messages.default = analysis_json()
    fake_client.messages.gate = gate
    registry = UploadRegistry(max_per_user=1)
    busy = registry.add(BatchUpload(user, ai_service, storage, settings))
    busy.add_files([pdf("a.pdf")])
    task = asyncio.create_task(busy.analyze_all())
    await asyncio.sleep(0)

    fresh = registry.add(BatchUpload(user, ai_service, storage, settings))

    assert registry.get(busy.id, user.id) is busy
    assert registry.get(fresh.id, user.id) is fresh
    gate.set()
    await task
