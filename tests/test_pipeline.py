"""批量处理流水线测试。"""

import zipfile
from io import BytesIO

import pytest

from py_image_batch_mcp import (
    BatchImagePipeline,
    CompressionEngine,
    EntryStatus,
    EventKind,
    OutcomeStatus,
)
from py_image_batch_mcp.core import ArchiveBuilder
from py_image_batch_mcp.exceptions import ArchiveError
from tests.conftest import (
    failing_transform,
    halving_transform,
    make_blob,
    make_text_blob,
)


def _kinds(events):
    return [event.kind for event in events]


def _zip_names(data: bytes) -> list[str]:
    with zipfile.ZipFile(BytesIO(data)) as archive:
        return sorted(archive.namelist())


@pytest.fixture
def events():
    return []


@pytest.fixture
def pipeline(events):
    pipeline = BatchImagePipeline(
        engine=CompressionEngine(transform=halving_transform)
    )
    pipeline.subscribe(events.append)
    yield pipeline
    pipeline.dispose()


class TestAddAndRemove:
    """添加和删除测试"""

    def test_add_emits_events(self, pipeline, events):
        """先报告拒绝数，再报告添加数"""
        outcome = pipeline.add([make_blob("a.jpg"), make_text_blob(), make_blob()])

        assert outcome.status == OutcomeStatus.PARTIAL
        assert _kinds(events) == [EventKind.FILES_REJECTED, EventKind.FILES_ADDED]
        assert events[0].count == 1
        assert events[1].count == 2
        assert len(pipeline.entries) == 2

    def test_add_nothing_emits_nothing(self, pipeline, events):
        pipeline.add([])

        assert events == []

    def test_remove(self, pipeline):
        entry_id = pipeline.add([make_blob()]).entry_ids[0]

        assert pipeline.remove(entry_id).status == OutcomeStatus.SUCCESS
        assert pipeline.remove(entry_id).status == OutcomeStatus.NOOP
        assert pipeline.entries == []

    def test_clear(self, pipeline):
        pipeline.add([make_blob(f"{i}.jpg") for i in range(3)])

        outcome = pipeline.clear()

        assert outcome.count == 3
        assert pipeline.clear().status == OutcomeStatus.NOOP
        assert pipeline.store.previews.live_count == 0


class TestSettings:
    """设置操作测试"""

    def test_invalid_quality_reports_failure(self, pipeline):
        """无效质量返回失败结果，不抛出异常"""
        outcome = pipeline.set_quality(3.0)

        assert outcome.status == OutcomeStatus.FAILURE
        assert "quality" in outcome.error
        assert pipeline.settings.quality == pytest.approx(0.8)

    def test_valid_settings(self, pipeline):
        assert pipeline.set_quality(0.5).status == OutcomeStatus.SUCCESS
        assert pipeline.set_max_dimension(800).status == OutcomeStatus.SUCCESS
        assert pipeline.settings.max_dimension == 800

    def test_invalid_max_dimension(self, pipeline):
        assert pipeline.set_max_dimension(0).status == OutcomeStatus.FAILURE


class TestCompressAndDownload:
    """压缩并打包测试"""

    def test_full_flow(self, pipeline, events):
        """完整流程的事件顺序和结果"""
        pipeline.add([make_blob(f"{i}.jpg") for i in range(3)])
        events.clear()

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.compressed_count == 3
        assert _kinds(events) == [
            EventKind.COMPRESSION_STARTED,
            EventKind.COMPRESSION_PROGRESS,
            EventKind.COMPRESSION_PROGRESS,
            EventKind.COMPRESSION_PROGRESS,
            EventKind.COMPRESSION_COMPLETE,
            EventKind.ARCHIVE_READY,
        ]
        assert [e.done for e in events[1:4]] == [1, 2, 3]
        ready = events[-1]
        assert ready.filename == "compressed_images.zip"
        assert ready.data == outcome.archive.data
        assert _zip_names(ready.data) == ["0.jpg", "1.jpg", "2.jpg"]
        for entry in pipeline.entries:
            assert entry.status == EntryStatus.COMPRESSED
            assert entry.compression_ratio == pytest.approx(2, rel=0.01)

    def test_second_run_is_noop(self, pipeline, events):
        """全部已压缩时第二次调用是空操作，不发事件"""
        pipeline.add([make_blob()])
        pipeline.compress_and_download()
        events.clear()

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.NOOP
        assert events == []

    def test_empty_store_is_noop(self, pipeline, events):
        assert pipeline.compress_and_download().status == OutcomeStatus.NOOP
        assert events == []

    def test_fallback_is_partial(self, events):
        """单个条目失败时整体为部分成功，原图进入压缩包"""
        pipeline = BatchImagePipeline(
            engine=CompressionEngine(transform=failing_transform)
        )
        pipeline.subscribe(events.append)
        bad = make_blob("bad.jpg")
        pipeline.add([make_blob("a.jpg"), bad])
        bad_id = pipeline.entries[1].id

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.PARTIAL
        assert outcome.fallback_ids == [bad_id]
        errors = [e for e in events if e.kind == EventKind.COMPRESSION_ERROR]
        assert [e.entry_id for e in errors] == [bad_id]
        assert _kinds(events).index(EventKind.COMPRESSION_ERROR) < _kinds(
            events
        ).index(EventKind.COMPRESSION_COMPLETE)
        with zipfile.ZipFile(BytesIO(outcome.archive.data)) as archive:
            assert archive.read("bad.jpg") == bad.data
        entry = pipeline.store.get(bad_id)
        assert entry.status == EntryStatus.COMPRESSED
        assert entry.fell_back is True
        pipeline.dispose()

    def test_fallback_as_failed_is_retried(self):
        """回退标记为 Failed 时下次调用会重新压缩"""
        pipeline = BatchImagePipeline(
            engine=CompressionEngine(
                transform=failing_transform, fallback_as_failed=True
            )
        )
        pipeline.add([make_blob("bad.jpg")])

        first = pipeline.compress_and_download()
        second = pipeline.compress_and_download()

        assert first.status == OutcomeStatus.PARTIAL
        assert second.status == OutcomeStatus.PARTIAL
        assert pipeline.entries[0].status == EntryStatus.FAILED
        pipeline.dispose()

    def test_archive_failure(self, events, monkeypatch):
        """打包失败时报告错误，已合并的压缩结果保留"""

        def broken_build(self, entries):
            raise ArchiveError("打包失败: disk full")

        monkeypatch.setattr(ArchiveBuilder, "build_archive", broken_build)
        pipeline = BatchImagePipeline(
            engine=CompressionEngine(transform=halving_transform)
        )
        pipeline.subscribe(events.append)
        pipeline.add([make_blob("a.jpg"), make_blob("b.jpg")])

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.FAILURE
        assert outcome.compressed_count == 2
        assert outcome.archive is None
        assert _kinds(events)[-1] == EventKind.ARCHIVE_ERROR
        assert EventKind.ARCHIVE_READY not in _kinds(events)
        assert all(e.status == EntryStatus.COMPRESSED for e in pipeline.entries)
        pipeline.dispose()

    def test_engine_failure_reverts_entries(self):
        """引擎整体失败时条目退回 Pending"""

        class BrokenEngine(CompressionEngine):
            def compress(self, entries, options, on_progress=None):
                raise RuntimeError("executor down")

        pipeline = BatchImagePipeline(engine=BrokenEngine())
        pipeline.add([make_blob()])

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.FAILURE
        assert "executor down" in outcome.error
        assert pipeline.entries[0].status == EntryStatus.PENDING
        pipeline.dispose()

    def test_archive_contains_only_this_run(self, pipeline):
        """默认只打包本次处理的条目"""
        pipeline.add([make_blob("old.jpg")])
        pipeline.compress_and_download()
        pipeline.add([make_blob("new.jpg")])

        outcome = pipeline.compress_and_download()

        assert _zip_names(outcome.archive.data) == ["new.jpg"]

    def test_include_previous(self, pipeline):
        """include_previous 打包所有条目"""
        pipeline.add([make_blob("old.jpg")])
        pipeline.compress_and_download()
        pipeline.add([make_blob("new.jpg")])

        outcome = pipeline.compress_and_download(include_previous=True)

        assert _zip_names(outcome.archive.data) == ["new.jpg", "old.jpg"]
        assert outcome.compressed_count == 1

    def test_removed_during_compression(self, pipeline):
        """压缩期间被删除的条目结果被忽略"""
        pipeline.add([make_blob(f"{i}.jpg") for i in range(3)])
        victim = pipeline.entries[0].id

        def remove_on_start(event):
            if event.kind == EventKind.COMPRESSION_STARTED:
                pipeline.remove(victim)

        pipeline.subscribe(remove_on_start)

        outcome = pipeline.compress_and_download()

        assert victim not in pipeline.store
        assert _zip_names(outcome.archive.data) == ["1.jpg", "2.jpg"]
        assert pipeline.store.previews.live_count == 2

    def test_concurrent_call_rejected(self, pipeline):
        """已有任务进行时拒绝新的调用"""
        pipeline.add([make_blob()])
        pipeline._run_lock.acquire()
        try:
            outcome = pipeline.compress_and_download()
        finally:
            pipeline._run_lock.release()

        assert outcome.status == OutcomeStatus.FAILURE
        assert pipeline.entries[0].status == EntryStatus.PENDING


class TestListeners:
    """事件监听测试"""

    def test_listener_exception_isolated(self, pipeline, events):
        """监听器抛出异常不影响其他监听器和流程"""

        def broken(event):
            raise RuntimeError("listener failed")

        pipeline.subscribe(broken)
        pipeline.add([make_blob()])

        outcome = pipeline.compress_and_download()

        assert outcome.status == OutcomeStatus.SUCCESS
        assert EventKind.ARCHIVE_READY in _kinds(events)

    def test_unsubscribe(self, pipeline):
        received = []
        unsubscribe = pipeline.subscribe(received.append)
        unsubscribe()
        unsubscribe()

        pipeline.add([make_blob()])

        assert received == []


class TestDispose:
    """会话结束测试"""

    def test_dispose_releases_everything(self, events):
        with BatchImagePipeline(
            engine=CompressionEngine(transform=halving_transform)
        ) as pipeline:
            pipeline.subscribe(events.append)
            pipeline.add([make_blob(f"{i}.jpg") for i in range(3)])
            pipeline.compress_and_download()
            registry = pipeline.store.previews

        assert len(pipeline.store) == 0
        assert registry.live_count == 0
        assert registry.acquired_total == registry.released_total

    def test_real_transform_end_to_end(self):
        """使用真实变换的完整流程"""
        with BatchImagePipeline() as pipeline:
            pipeline.set_max_dimension(100)
            pipeline.add([make_blob("a.jpg", size=(400, 300)), make_blob("b.jpg")])

            outcome = pipeline.compress_and_download()

            assert outcome.status == OutcomeStatus.SUCCESS
            assert outcome.archive.file_count == 2
            for entry in pipeline.entries:
                assert entry.current.size < entry.original.size
