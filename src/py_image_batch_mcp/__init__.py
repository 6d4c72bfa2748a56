"""批量图片压缩流水线库。

接收原始图片字节，在有界并发下压缩并打包为单个 zip。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "批量图片压缩与打包流水线，基于 Pillow 11"

# 核心功能导出
from .core.archive import ArchiveBuilder
from .core.entry_store import ImageEntryStore
from .engine.compression_engine import CompressionEngine
from .engine.settings import SettingsProvider
from .models import (
    EntryStatus,
    EventKind,
    ImageBlob,
    ImageEntry,
    OutcomeStatus,
    PipelineEvent,
)
from .pipeline import BatchImagePipeline


__all__ = [
    "ArchiveBuilder",
    "BatchImagePipeline",
    "CompressionEngine",
    "EntryStatus",
    "EventKind",
    "ImageBlob",
    "ImageEntry",
    "ImageEntryStore",
    "OutcomeStatus",
    "PipelineEvent",
    "SettingsProvider",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
