"""Tests for capture_service.py - pending capture state machine and ingestion."""
from datetime import timezone

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.services.capture_service import CaptureInProgress, CaptureService, CaptureState
from app.services.cleanup_service import CleanupService
from app.services.command_service import CommandService
from app.services.download_service import AttachmentFetcher
from app.services.errors import IngestOutcome
from app.services.recency_cache import RecencyCache
from app.services.selection_service import QuoteReply, SelectionEngine
from app.utils.messages import MSG

URL = "http://images.example.org/cat.png"


def _service(store, storage, scheduled, body=b"p" * 500, status=200, max_kib=1000):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status, content=body)

    fetcher = AttachmentFetcher(
        storage=storage,
        transport=httpx.MockTransport(handler),
        sleep=AsyncMock(),
        retries=10,
        retry_delay=2.0,
    )
    cleanup = CleanupService(store=store, storage=storage, schedule=scheduled, delay_seconds=1.0)
    service = CaptureService(
        store=store,
        fetcher=fetcher,
        cleanup=cleanup,
        max_image_bytes=max_kib * 1024,
        cancel_keywords=["cancel", "取消"],
    )
    return service, calls


class TestRegister:
    """Test registering capture requests."""

    def test_new_entry_waits_with_scope_tag_first(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        entry = service.register(message("/quote_add funny cat", message_id="1"), ["funny", "cat"])

        assert entry.state == CaptureState.WAIT
        assert list(entry.payload.tags) == ["42", "funny", "cat"]
        assert entry.payload.origin_message_id == "1"
        assert entry.payload.scope == "42"
        assert entry.payload.time.tzinfo == timezone.utc

    def test_second_request_while_waiting_is_rejected(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message())

        with pytest.raises(CaptureInProgress) as exc:
            service.register(message())
        assert exc.value.state == CaptureState.WAIT
        assert exc.value.reply_text == MSG.CAPTURE_STILL_WAITING

    def test_second_request_while_pending_has_distinct_message(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message()).state = CaptureState.PENDING

        with pytest.raises(CaptureInProgress) as exc:
            service.register(message())
        assert exc.value.reply_text == MSG.CAPTURE_IN_PROCESS

    def test_other_users_and_scopes_are_independent(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message(user="u1"))
        service.register(message(user="u2"))
        service.register(message(user="u1", scope="43"))
        assert len(service.entries()) == 3

    def test_finished_entry_can_be_replaced(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message()).state = CaptureState.FINISHED
        assert service.register(message()).state == CaptureState.WAIT

    def test_private_chat_scope_is_user(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        entry = service.register(message(user="u9", private=True))
        assert entry.scope == "u9"
        assert entry.payload.tags.scope == "u9"


class TestMatch:
    """Test routing inbound messages into waiting captures."""

    @pytest.mark.asyncio
    async def test_full_capture_scenario(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        service.register(message("/quote_add", message_id="1"), [])

        assert await service.handle_message(message("hello", message_id="2"), replies) is None
        assert service.entry_for("42", "u1").state == CaptureState.WAIT

        outcome = await service.handle_message(message(image_src=URL, message_id="3"), replies)

        assert outcome == IngestOutcome.SUCCESS
        assert len(calls) == 1
        quotes = store.query("42")
        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.content == URL
        assert quote.origin_message_id == "3"
        assert quote.tags == '["42"]'
        assert storage_dir.is_valid(quote.id)
        assert replies.texts == [MSG.CAPTURE_SAVED.format(id=quote.id)]
        assert service.entry_for("42", "u1") is None

    @pytest.mark.asyncio
    async def test_entry_is_pending_during_ingestion(self, store, storage_dir, scheduled, replies, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message())
        seen = []
        real_fetch = service.fetcher.fetch_with_retry

        async def spying_fetch(url, quote_id):
            seen.append(service.entry_for("42", "u1").state)
            return await real_fetch(url, quote_id)

        service.fetcher.fetch_with_retry = spying_fetch
        await service.handle_message(message(image_src=URL), replies)
        assert seen == [CaptureState.PENDING]

    @pytest.mark.asyncio
    async def test_cancel_keyword_finishes_entry(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        service.register(message())

        outcome = await service.handle_message(message("取消"), replies)

        assert outcome == IngestOutcome.CANCELLED
        assert service.entry_for("42", "u1") is None
        assert calls == []
        assert replies.texts == [MSG.CAPTURE_CANCELLED]

    @pytest.mark.asyncio
    async def test_other_users_image_is_ignored(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        service.register(message(user="u1"))

        assert await service.handle_message(message(user="u2", image_src=URL), replies) is None
        assert service.entry_for("42", "u1").state == CaptureState.WAIT
        assert calls == []

    @pytest.mark.asyncio
    async def test_image_in_other_scope_is_ignored(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        service.register(message(scope="42"))

        assert await service.handle_message(message(scope="43", image_src=URL), replies) is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_unresolvable_image_keeps_waiting(self, store, storage_dir, scheduled, replies, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.resolve_src = AsyncMock(return_value=None)
        service.register(message())

        msg = message(image_src=URL)
        msg.first_image.src = None
        assert await service.handle_message(msg, replies) is None
        assert service.entry_for("42", "u1").state == CaptureState.WAIT
        assert replies.texts == [MSG.IMAGE_UNAVAILABLE]
        assert store.query("42") == []


class TestIngestFailures:
    """Test integrity and size failures during ingestion."""

    @pytest.mark.asyncio
    async def test_permanent_download_failure_removes_record(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled, body=b"oops", status=502)
        service.register(message())

        outcome = await service.handle_message(message(image_src=URL), replies)

        assert outcome == IngestOutcome.INTEGRITY_FAILURE
        assert len(calls) == 11
        assert service.fetcher.sleep.await_count == 10
        quote_id = store.query("42")[0].id
        assert replies.texts[0] == MSG.DOWNLOAD_FAILED.format(id=quote_id)
        assert replies.texts[1] == f'{quote_id}:["42"]'
        assert len(scheduled.jobs) == 1
        assert scheduled.jobs[0][1] == 1.0
        assert service.entry_for("42", "u1") is None

        await scheduled.run_all()
        assert store.get(quote_id) is None
        assert replies.texts[-1] == MSG.DELETE_FINISHED.format(id=quote_id)

    @pytest.mark.asyncio
    async def test_oversized_file_is_discarded_without_retry(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled, body=b"p" * (2000 * 1024), max_kib=1000)
        service.register(message())

        outcome = await service.handle_message(message(image_src=URL), replies)

        assert outcome == IngestOutcome.SIZE_VIOLATION
        assert len(calls) == 1
        service.fetcher.sleep.assert_not_called()
        assert store.query("42") == []
        assert list(storage_dir.base.iterdir()) == []
        assert len(replies.texts) == 1
        assert "too large" in replies.texts[0]
        assert scheduled.jobs == []

    @pytest.mark.asyncio
    async def test_malformed_image_url_is_reported_and_removed(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        service.register(message())

        outcome = await service.handle_message(message(image_src=URL + "\x00"), replies)

        assert outcome == IngestOutcome.INTEGRITY_FAILURE
        assert calls == []
        quote_id = store.query("42")[0].id
        assert replies.texts[0] == MSG.DOWNLOAD_FAILED.format(id=quote_id)
        assert service.entry_for("42", "u1") is None

        await scheduled.run_all()
        assert store.query("42") == []

    @pytest.mark.asyncio
    async def test_unexpected_error_after_create_discards_record(self, store, storage_dir, scheduled, replies, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message())
        store.set = MagicMock(side_effect=RuntimeError("database is locked"))

        outcome = await service.handle_message(message(image_src=URL), replies)

        assert outcome == IngestOutcome.INTEGRITY_FAILURE
        quote_id = store.query("42")[0].id
        assert replies.texts[0] == MSG.DOWNLOAD_FAILED.format(id=quote_id)
        assert len(scheduled.jobs) == 1
        assert service.entry_for("42", "u1") is None

        await scheduled.run_all()
        assert store.get(quote_id) is None
        assert not storage_dir.path_for(quote_id).exists()
        assert replies.texts[-1] == MSG.DELETE_FINISHED.format(id=quote_id)

    @pytest.mark.asyncio
    async def test_file_at_ceiling_is_accepted(self, store, storage_dir, scheduled, replies, message):
        service, _ = _service(store, storage_dir, scheduled, body=b"p" * 1024, max_kib=1)
        service.register(message())
        assert await service.handle_message(message(image_src=URL), replies) == IngestOutcome.SUCCESS


class TestPurge:
    """Test lazy removal of finished entries."""

    def test_purge_only_drops_finished(self, store, storage_dir, scheduled, message):
        service, _ = _service(store, storage_dir, scheduled)
        service.register(message(user="a")).state = CaptureState.FINISHED
        service.register(message(user="b")).state = CaptureState.PENDING
        service.register(message(user="c"))

        assert service.purge() == 1
        assert sorted(e["user"] for e in service.snapshot()) == ["b", "c"]


class TestCaptureThenLookup:
    """Test a capture followed by a lookup of the stored quote."""

    @pytest.mark.asyncio
    async def test_captured_image_is_served_from_local_file(self, store, storage_dir, scheduled, replies, message):
        service, calls = _service(store, storage_dir, scheduled)
        commands = CommandService(
            store=store,
            storage=storage_dir,
            capture=service,
            selection=SelectionEngine(RecencyCache(), less_repetition=80),
            cleanup=service.cleanup,
            page_size=5,
        )

        waiting = await commands.handle("quote_add", ["cat"], message("/quote_add cat", message_id="1"), replies)
        assert waiting == MSG.CAPTURE_WAITING
        assert await service.handle_message(message(image_src=URL, message_id="2"), replies) == IngestOutcome.SUCCESS
        quote_id = store.query("42")[0].id

        result = await commands.handle("quote", ["-i", str(quote_id)], message("/quote", message_id="3"), replies)

        assert isinstance(result, QuoteReply)
        assert result.quote_id == quote_id
        assert result.text == f"{quote_id}:"
        assert result.image_path == storage_dir.path_for(quote_id)
        assert result.image_path.read_bytes() == b"p" * 500
        assert len(calls) == 1
