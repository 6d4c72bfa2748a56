"""图像条目存储模块。

有序的条目集合，负责条目生命周期和预览句柄生命周期。
只有协调者调用这里的变更方法，压缩任务只返回结果。
"""

import itertools
import threading
from collections.abc import Iterable, Iterator

from ..models.compression_result import (
    AddOutcome,
    EntryCompressionResult,
    OutcomeStatus,
)
from ..models.constants import is_image_mime_type
from ..models.image_entry import EntryStatus, ImageBlob, ImageEntry
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .preview import PreviewRegistry


logger = get_logger()

# 可以派发压缩的状态
DISPATCHABLE_STATUSES = frozenset({EntryStatus.PENDING, EntryStatus.FAILED})


class ImageEntryStore:
    """图像条目存储

    维护以下约束：
    - id 在存储中唯一且永不复用
    - 每个条目恰好持有一个与当前载荷对应的存活预览句柄
    - 删除条目时句柄恰好释放一次
    """

    def __init__(self, previews: PreviewRegistry | None = None):
        self.previews = previews or PreviewRegistry()
        self._entries: list[ImageEntry] = []
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def _next_id(self) -> str:
        return f"img-{next(self._ids):06d}"

    def add(self, files: Iterable[ImageBlob]) -> AddOutcome:
        """添加文件，非图像文件被拒绝并计数

        Args:
            files: 待添加的载荷，按输入顺序追加

        Returns:
            AddOutcome: 接受/拒绝计数和新条目 id
        """
        accepted: list[ImageBlob] = []
        rejected_names: list[str] = []
        for blob in files:
            if is_image_mime_type(blob.mime_type):
                accepted.append(blob)
            else:
                logger.debug(
                    MessageFormatter.validation_error(
                        "mime_type", blob.mime_type, f"非图像文件 {blob.name}"
                    )
                )
                rejected_names.append(blob.name)

        entry_ids: list[str] = []
        with self._lock:
            for blob in accepted:
                entry = ImageEntry(
                    id=self._next_id(),
                    original=blob,
                    current=blob,
                    preview=self.previews.acquire(blob),
                )
                self._entries.append(entry)
                entry_ids.append(entry.id)

        if accepted and rejected_names:
            status = OutcomeStatus.PARTIAL
        elif accepted:
            status = OutcomeStatus.SUCCESS
        elif rejected_names:
            status = OutcomeStatus.FAILURE
        else:
            status = OutcomeStatus.NOOP

        logger.info(MessageFormatter.files_added(len(accepted), len(rejected_names)))
        return AddOutcome(
            status=status,
            accepted=len(accepted),
            rejected=len(rejected_names),
            entry_ids=entry_ids,
            rejected_names=rejected_names,
        )

    def remove(self, entry_id: str) -> bool:
        """删除条目并释放其预览句柄，不存在时为空操作

        Returns:
            bool: 是否删除了条目
        """
        with self._lock:
            index = self._index_of(entry_id)
            if index is None:
                logger.debug(MessageFormatter.entry_not_found(entry_id))
                return False
            entry = self._entries.pop(index)
            self.previews.release(entry.preview)
        return True

    def clear(self) -> int:
        """释放所有预览句柄并清空存储

        Returns:
            int: 删除的条目数
        """
        with self._lock:
            entries, self._entries = self._entries, []
            for entry in entries:
                self.previews.release(entry.preview)
        return len(entries)

    def mark_compressing(self, entry_ids: Iterable[str]) -> list[ImageEntry]:
        """把可派发的条目切换为 Compressing

        已在压缩中或已压缩的条目被跳过，保证同一条目最多一个在途压缩。

        Returns:
            list[ImageEntry]: 切换后的条目快照，按存储顺序
        """
        wanted = set(entry_ids)
        dispatched: list[ImageEntry] = []
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.id in wanted and entry.status in DISPATCHABLE_STATUSES:
                    updated = entry.model_copy(
                        update={
                            "status": EntryStatus.COMPRESSING,
                            "compression_ratio": 1.0,
                            "fell_back": False,
                            "error": None,
                        }
                    )
                    self._entries[index] = updated
                    dispatched.append(updated)
        return dispatched

    def revert_compressing(self, entry_ids: Iterable[str]) -> int:
        """把仍处于 Compressing 的条目退回 Pending"""
        wanted = set(entry_ids)
        reverted = 0
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.id in wanted and entry.status == EntryStatus.COMPRESSING:
                    self._entries[index] = entry.model_copy(
                        update={"status": EntryStatus.PENDING}
                    )
                    reverted += 1
        return reverted

    def merge_results(self, results: Iterable[EntryCompressionResult]) -> int:
        """把压缩结果合并回存储

        按派发时捕获的 id 匹配尚未 Compressed 的条目，并校验原始载荷一致；
        原位替换，当前载荷变化时释放旧句柄并获取新句柄。未匹配的结果被忽略。

        Returns:
            int: 合并的结果数
        """
        merged = 0
        with self._lock:
            for result in results:
                index = self._index_of(result.entry_id)
                if index is None:
                    logger.debug(f"结果未匹配到条目，忽略: {result.entry_id}")
                    continue

                entry = self._entries[index]
                if entry.status == EntryStatus.COMPRESSED:
                    logger.debug(f"条目已压缩，忽略结果: {entry.id}")
                    continue
                if entry.original != result.original:
                    logger.warning(f"结果的原始载荷与条目不一致，忽略: {entry.id}")
                    continue

                preview = entry.preview
                if result.blob != entry.current:
                    preview = self.previews.replace(entry.preview, result.blob)

                self._entries[index] = ImageEntry(
                    id=entry.id,
                    original=entry.original,
                    current=result.blob,
                    preview=preview,
                    compression_ratio=result.ratio,
                    status=result.status,
                    fell_back=result.fell_back,
                    error=result.error,
                )
                merged += 1
        return merged

    def get(self, entry_id: str) -> ImageEntry | None:
        with self._lock:
            index = self._index_of(entry_id)
            return None if index is None else self._entries[index]

    def snapshot(self) -> list[ImageEntry]:
        """当前条目的有序快照"""
        with self._lock:
            return list(self._entries)

    def dispatchable_entries(self) -> list[ImageEntry]:
        """尚未压缩且不在压缩中的条目"""
        with self._lock:
            return [e for e in self._entries if e.status in DISPATCHABLE_STATUSES]

    def _index_of(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[ImageEntry]:
        return iter(self.snapshot())

    def __contains__(self, entry_id: object) -> bool:
        return isinstance(entry_id, str) and self.get(entry_id) is not None
