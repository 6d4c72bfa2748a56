"""核心模块包。

单图变换、预览句柄、条目存储和打包等核心功能。
"""

from .archive import ArchiveBuilder
from .entry_store import ImageEntryStore
from .formats import FormatProcessor
from .preview import PreviewRegistry
from .transform import compress_blob


__all__ = [
    "ArchiveBuilder",
    "FormatProcessor",
    "ImageEntryStore",
    "PreviewRegistry",
    "compress_blob",
]
