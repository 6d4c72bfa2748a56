"""批量图像处理异常模块。

定义统一的异常类和错误处理机制，包含异常处理装饰器。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.compression_result import (
    EntryCompressionResult,
    OutcomeStatus,
    PipelineOutcome,
)
from .models.image_entry import EntryStatus, ImageEntry
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class BatchImageError(Exception):
    """批量图像处理错误基类"""

    def __init__(self, message: str, subject: str | None = None):
        super().__init__(message)
        self.message = message
        self.subject = subject


class ValidationError(BatchImageError):
    """参数验证错误，包括非图像文件和越界设置"""

    pass


class CompressionError(BatchImageError):
    """单条目压缩错误，由引擎就地回退处理"""

    pass


class UnsupportedFormatError(CompressionError):
    """不支持的格式错误"""

    pass


class ProcessingError(CompressionError):
    """处理过程错误"""

    pass


class ArchiveError(BatchImageError):
    """打包错误，只对本次下载操作致命"""

    pass


# 异常处理装饰器
def handle_image_errors(operation_name: str = "图像处理"):
    """统一的图像处理异常处理装饰器

    把 Pillow 和系统异常映射到 CompressionError 体系。

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except CompressionError:
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{operation_name} - 无法识别图像格式: {e}")
                raise UnsupportedFormatError(f"无法识别的图像数据: {e}") from e
            except DecompressionBombError as e:
                logger.debug(f"{operation_name} - 图像过大: {e}")
                raise ProcessingError(f"图像过大，可能存在安全风险: {e}") from e
            except OSError as e:
                logger.debug(f"{operation_name} - 编解码失败: {e}")
                raise ProcessingError(f"编解码失败: {e}") from e
            except (ValueError, TypeError) as e:
                logger.debug(f"{operation_name} - 参数错误: {e}")
                raise ProcessingError(f"参数错误: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误处理和日志记录功能。
    """

    @staticmethod
    def _log_error(
        operation: str, subject: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"图像压缩"、"打包"等）
            subject: 相关条目或文件
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, subject, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def create_fallback_result(
        entry: ImageEntry,
        error: Exception,
        operation: str = "图像压缩",
        mark_failed: bool = False,
    ) -> EntryCompressionResult:
        """创建回退到原图的结果

        Args:
            entry: 派发时的条目快照
            error: 导致回退的异常
            operation: 操作名称
            mark_failed: 为 True 时终态为 Failed，否则为 Compressed
        """
        level = "warning" if isinstance(error, CompressionError) else "error"
        ErrorHandler._log_error(operation, f"{entry.id}:{entry.name}", error, level)

        return EntryCompressionResult(
            entry_id=entry.id,
            original=entry.original,
            blob=entry.original,
            ratio=1.0,
            status=EntryStatus.FAILED if mark_failed else EntryStatus.COMPRESSED,
            fell_back=True,
            success=False,
            error=f"{operation}: {error}",
        )

    @staticmethod
    def create_failure_outcome(
        error: Exception,
        operation: str,
        compressed_count: int = 0,
        fallback_ids: list[str] | None = None,
    ) -> PipelineOutcome:
        """创建失败的流水线结果，保留已完成部分的计数"""
        ErrorHandler._log_error(operation, "batch", error, "error")
        return PipelineOutcome(
            status=OutcomeStatus.FAILURE,
            compressed_count=compressed_count,
            fallback_ids=fallback_ids or [],
            archive=None,
            error=f"{operation}: {error}",
        )
