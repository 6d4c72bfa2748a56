"""批量压缩引擎模块。

在有界并发下压缩一组条目，单个条目失败时回退到原图，不影响其他条目。
"""

from collections.abc import Callable, Sequence

from ..config import get_config
from ..core.transform import compress_blob
from ..exceptions import ErrorHandler, ValidationError
from ..models.compression_config import CompressionOptions, SchedulingMode
from ..models.compression_result import CompressionBatchResult, EntryCompressionResult
from ..models.image_entry import EntryStatus, ImageBlob, ImageEntry
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .concurrent_executor import ConcurrentExecutor


logger = get_logger()

Transform = Callable[[ImageBlob, CompressionOptions], ImageBlob]
ProgressCallback = Callable[[int, int], None]


class CompressionEngine:
    """批量压缩引擎

    引擎只读取传入的条目快照并返回结果，从不修改共享的条目集合。
    """

    def __init__(
        self,
        group_size: int | None = None,
        scheduling: SchedulingMode | str | None = None,
        transform: Transform = compress_blob,
        fallback_as_failed: bool | None = None,
    ):
        """初始化压缩引擎

        Args:
            group_size: 并发上限，分组模式下即每组大小
            scheduling: 调度方式 'group' 或 'pool'
            transform: 单图变换函数
            fallback_as_failed: 回退结果是否标记为 Failed

        Raises:
            ValidationError: 参数无效
        """
        defaults = get_config().compression
        group_size = defaults.GROUP_SIZE if group_size is None else group_size
        if group_size <= 0:
            raise ValidationError("group_size 必须大于 0")

        try:
            self.scheduling = SchedulingMode(scheduling or defaults.SCHEDULING)
        except ValueError as e:
            raise ValidationError(f"scheduling 必须是 'group' 或 'pool': {e}") from e

        self.group_size = group_size
        self.transform = transform
        self.fallback_as_failed = (
            defaults.FALLBACK_AS_FAILED
            if fallback_as_failed is None
            else fallback_as_failed
        )
        self.executor: ConcurrentExecutor[ImageEntry, EntryCompressionResult] = (
            ConcurrentExecutor(max_workers=group_size, mode=self.scheduling)
        )

    def compress(
        self,
        entries: Sequence[ImageEntry],
        options: CompressionOptions,
        on_progress: ProgressCallback | None = None,
    ) -> CompressionBatchResult:
        """压缩一组条目

        已是 Compressed 的条目被跳过，不产生结果。其余每个条目恰好产生一个
        结果，on_progress(done, total) 在每个条目完成时调用一次。

        Args:
            entries: 条目快照
            options: 压缩参数
            on_progress: 进度回调，按完成顺序调用

        Returns:
            CompressionBatchResult: 按输入顺序排列的结果
        """
        to_compress = [e for e in entries if e.status != EntryStatus.COMPRESSED]
        skipped_ids = [e.id for e in entries if e.status == EntryStatus.COMPRESSED]
        if skipped_ids:
            logger.debug(f"跳过已压缩的条目: {skipped_ids}")

        if not to_compress:
            return CompressionBatchResult(
                success=True, results=[], skipped_ids=skipped_ids
            )

        total = len(to_compress)
        done = 0

        def report(_: EntryCompressionResult) -> None:
            nonlocal done
            done += 1
            logger.debug(MessageFormatter.compression_progress(done, total))
            if on_progress is not None:
                on_progress(done, total)

        logger.info(
            f"{MessageFormatter.compression_started(total)} "
            f"(调度={self.scheduling.value}, 并发={self.group_size})"
        )
        results = self.executor.execute_tasks(
            items=to_compress,
            task_function=lambda entry: self._compress_entry(entry, options),
            error_function=self._fallback,
            on_result=report,
        )

        batch_result = CompressionBatchResult(
            success=True, results=results, skipped_ids=skipped_ids
        )
        logger.info(batch_result.get_summary())
        return batch_result

    def _compress_entry(
        self, entry: ImageEntry, options: CompressionOptions
    ) -> EntryCompressionResult:
        """压缩单个条目，在工作线程中执行"""
        try:
            compressed = self.transform(entry.original, options)
            if compressed.size == 0:
                raise ValueError("变换结果为空")
        except Exception as e:
            return self._fallback(entry, e)

        return EntryCompressionResult(
            entry_id=entry.id,
            original=entry.original,
            blob=compressed,
            ratio=entry.original.size / compressed.size,
            status=EntryStatus.COMPRESSED,
            fell_back=False,
            success=True,
        )

    def _fallback(self, entry: ImageEntry, error: Exception) -> EntryCompressionResult:
        return ErrorHandler.create_fallback_result(
            entry, error, mark_failed=self.fallback_as_failed
        )
