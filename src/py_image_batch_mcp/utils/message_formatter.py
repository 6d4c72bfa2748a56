"""消息格式化工具模块。

提供统一的错误消息、进度消息格式化功能。
"""

from pathlib import Path
from typing import Any


def _plural(count: int) -> str:
    return f"{count} 张图片"


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def entry_not_found(entry_id: str) -> str:
        """条目不存在消息"""
        return f"条目不存在: {entry_id}"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def validation_error(field: str, value: Any, reason: str | None = None) -> str:
        """参数验证错误消息"""
        msg = f"参数验证失败 - {field}: {value}"
        if reason:
            msg += f" ({reason})"
        return msg

    @staticmethod
    def format_error(operation: str, subject: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{subject}]: {error}"

    @staticmethod
    def files_added(accepted: int, rejected: int) -> str:
        """添加文件消息"""
        msg = f"已添加 {_plural(accepted)}"
        if rejected:
            msg += f"，拒绝 {rejected} 个非图像文件"
        return msg

    @staticmethod
    def compression_started(count: int) -> str:
        return f"开始压缩 {_plural(count)}"

    @staticmethod
    def compression_progress(done: int, total: int) -> str:
        return f"压缩进度 {done}/{total}"


# 便捷函数
def format_validation_error(field: str, value: Any, expected: str | None = None) -> str:
    """格式化验证错误消息"""
    reason = f"期望: {expected}" if expected else None
    return MessageFormatter.validation_error(field, value, reason)
