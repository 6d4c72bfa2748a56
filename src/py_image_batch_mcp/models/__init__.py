"""数据模型包。

定义批量图片处理相关的数据结构和模型。
"""

from .compression_config import CompressionOptions, SchedulingMode
from .compression_result import (
    AddOutcome,
    ArchiveResult,
    CompressionBatchResult,
    EntryCompressionResult,
    OperationOutcome,
    OutcomeStatus,
    PipelineOutcome,
)
from .constants import (
    ImageFormats,
    TransformDefaults,
    get_format_alias,
    get_mime_type,
    is_image_mime_type,
    is_lossy_format,
)
from .events import EventKind, EventListener, PipelineEvent
from .image_entry import EntryStatus, ImageBlob, ImageEntry, PreviewHandle


__all__ = [
    # 核心模型
    "AddOutcome",
    "ArchiveResult",
    "CompressionBatchResult",
    "CompressionOptions",
    "EntryCompressionResult",
    "EntryStatus",
    "ImageBlob",
    "ImageEntry",
    "OperationOutcome",
    "OutcomeStatus",
    "PipelineOutcome",
    "PreviewHandle",
    "SchedulingMode",
    # 事件
    "EventKind",
    "EventListener",
    "PipelineEvent",
    # 常量和工具
    "ImageFormats",
    "TransformDefaults",
    "get_format_alias",
    "get_mime_type",
    "is_image_mime_type",
    "is_lossy_format",
]
