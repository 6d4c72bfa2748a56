"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

from .file_helpers import (
    detect_mime_type,
    get_image_mime_type,
    iter_input_files,
    load_blob,
)
from .logging_helpers import configure_logging, get_logger
from .message_formatter import MessageFormatter, format_validation_error
from .naming_helpers import PathResolver


__all__ = [
    "MessageFormatter",
    "PathResolver",
    "configure_logging",
    "detect_mime_type",
    "format_validation_error",
    "get_image_mime_type",
    "get_logger",
    "iter_input_files",
    "load_blob",
]
