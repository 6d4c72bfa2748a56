"""批量图片处理流水线。

协调者持有条目存储，串联 添加 → 压缩 → 合并 → 打包 的完整流程，
并以离散事件的形式把状态通知给宿主。
"""

import threading
from collections.abc import Callable, Iterable
from typing import Any

from .core.archive import ArchiveBuilder
from .core.entry_store import ImageEntryStore
from .engine.compression_engine import CompressionEngine
from .engine.settings import SettingsProvider
from .exceptions import ErrorHandler, ValidationError
from .models.compression_result import (
    AddOutcome,
    OperationOutcome,
    OutcomeStatus,
    PipelineOutcome,
)
from .models.events import EventKind, EventListener, PipelineEvent
from .models.image_entry import ImageBlob, ImageEntry
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()


class BatchImagePipeline:
    """批量图片处理流水线

    只有流水线自身修改条目存储；压缩任务在工作线程中运行并返回结果，
    由流水线在调用线程中统一合并。所有公开操作返回分类结果而不抛出异常。
    """

    def __init__(
        self,
        settings: SettingsProvider | None = None,
        engine: CompressionEngine | None = None,
        archive_builder: ArchiveBuilder | None = None,
        store: ImageEntryStore | None = None,
    ):
        self.settings = settings or SettingsProvider()
        self.engine = engine or CompressionEngine()
        self.archive_builder = archive_builder or ArchiveBuilder()
        self.store = store or ImageEntryStore()
        self._listeners: list[EventListener] = []
        self._run_lock = threading.Lock()

        logger.debug("初始化批量图片处理流水线")

    # ------------------------------------------------------------------
    # 事件
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """订阅事件

        Returns:
            取消订阅的函数
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: EventKind, **fields: Any) -> None:
        event = PipelineEvent(kind=kind, **fields)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"事件监听器处理 {kind.value} 失败")

    # ------------------------------------------------------------------
    # 条目
    # ------------------------------------------------------------------

    @property
    def entries(self) -> list[ImageEntry]:
        """当前条目快照"""
        return self.store.snapshot()

    def add(self, files: Iterable[ImageBlob]) -> AddOutcome:
        """添加文件，非图像文件被拒绝并计数"""
        outcome = self.store.add(files)

        if outcome.rejected:
            self._emit(EventKind.FILES_REJECTED, count=outcome.rejected)
        if outcome.accepted:
            self._emit(EventKind.FILES_ADDED, count=outcome.accepted)
        return outcome

    def remove(self, entry_id: str) -> OperationOutcome:
        """删除条目，不存在时为空操作"""
        if self.store.remove(entry_id):
            return OperationOutcome(status=OutcomeStatus.SUCCESS, count=1)
        return OperationOutcome(
            status=OutcomeStatus.NOOP, error=MessageFormatter.entry_not_found(entry_id)
        )

    def clear(self) -> OperationOutcome:
        """清空所有条目"""
        count = self.store.clear()
        logger.info(f"已清空 {count} 张图片")
        return OperationOutcome(
            status=OutcomeStatus.SUCCESS if count else OutcomeStatus.NOOP, count=count
        )

    # ------------------------------------------------------------------
    # 设置
    # ------------------------------------------------------------------

    def set_quality(self, fraction: float) -> OperationOutcome:
        """设置压缩质量"""
        try:
            self.settings.set_quality(fraction)
        except ValidationError as e:
            logger.warning(e.message)
            return OperationOutcome(status=OutcomeStatus.FAILURE, error=e.message)
        return OperationOutcome(status=OutcomeStatus.SUCCESS)

    def set_max_dimension(self, pixels: int) -> OperationOutcome:
        """设置最长边像素上限"""
        try:
            self.settings.set_max_dimension(pixels)
        except ValidationError as e:
            logger.warning(e.message)
            return OperationOutcome(status=OutcomeStatus.FAILURE, error=e.message)
        return OperationOutcome(status=OutcomeStatus.SUCCESS)

    # ------------------------------------------------------------------
    # 压缩并打包
    # ------------------------------------------------------------------

    def compress_and_download(self, include_previous: bool = False) -> PipelineOutcome:
        """压缩所有未压缩的条目，合并结果并打包

        Args:
            include_previous: 为 True 时打包存储中的全部条目，
                否则只打包本次处理的条目

        Returns:
            PipelineOutcome: 分类结果；打包成功时包含压缩包
        """
        if not self._run_lock.acquire(blocking=False):
            return PipelineOutcome(
                status=OutcomeStatus.FAILURE, error="已有压缩任务正在进行"
            )

        try:
            return self._run(include_previous)
        finally:
            self._run_lock.release()

    def _run(self, include_previous: bool) -> PipelineOutcome:
        candidates = self.store.dispatchable_entries()
        if not candidates:
            logger.info("没有需要压缩的图片")
            return PipelineOutcome(status=OutcomeStatus.NOOP)

        try:
            options = self.settings.get_compression_options()
        except ValidationError as e:
            return ErrorHandler.create_failure_outcome(e, "派生压缩参数")

        dispatched = self.store.mark_compressing(e.id for e in candidates)
        dispatched_ids = [e.id for e in dispatched]
        self._emit(EventKind.COMPRESSION_STARTED, count=len(dispatched))

        try:
            batch = self.engine.compress(
                dispatched,
                options,
                on_progress=lambda done, total: self._emit(
                    EventKind.COMPRESSION_PROGRESS, done=done, total=total
                ),
            )
        except Exception as e:
            self.store.revert_compressing(dispatched_ids)
            return ErrorHandler.create_failure_outcome(e, "批量压缩")

        self.store.merge_results(batch.results)

        fallback_ids = batch.get_fallback_ids()
        for result in batch.results:
            if result.fell_back:
                self._emit(
                    EventKind.COMPRESSION_ERROR,
                    entry_id=result.entry_id,
                    error=result.error,
                )
        self._emit(EventKind.COMPRESSION_COMPLETE, count=len(batch.results))

        processed = set(dispatched_ids)
        to_pack = [
            entry
            for entry in self.store.snapshot()
            if include_previous or entry.id in processed
        ]

        try:
            archive = self.archive_builder.build_archive(to_pack)
        except Exception as e:
            self._emit(EventKind.ARCHIVE_ERROR, error=str(e))
            return ErrorHandler.create_failure_outcome(
                e, "打包下载", len(batch.results), fallback_ids
            )

        self._emit(
            EventKind.ARCHIVE_READY, data=archive.data, filename=archive.filename
        )
        return PipelineOutcome(
            status=OutcomeStatus.PARTIAL if fallback_ids else OutcomeStatus.SUCCESS,
            compressed_count=len(batch.results),
            fallback_ids=fallback_ids,
            archive=archive,
        )

    # ------------------------------------------------------------------
    # 会话生命周期
    # ------------------------------------------------------------------

    def dispose(self) -> int:
        """结束会话，释放所有条目和预览句柄"""
        count = self.store.clear()
        leaked = self.store.previews.dispose()
        if leaked:
            logger.warning(f"会话结束时仍有 {leaked} 个未归属的预览句柄")
        self._listeners.clear()
        return count

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时释放资源"""
        del exc_type, exc_val, exc_tb
        self.dispose()
