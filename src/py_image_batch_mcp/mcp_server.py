"""批量图片压缩 MCP 服务器。

把流水线的输入面暴露为 MCP 工具，文件从磁盘读入，压缩包写回磁盘。
"""

from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .models.compression_result import OutcomeStatus
from .models.events import EventKind, PipelineEvent
from .models.image_entry import ImageEntry
from .pipeline import BatchImagePipeline
from .utils.file_helpers import iter_input_files, load_blob
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter
from .utils.naming_helpers import PathResolver


logger = get_logger()

# MCP 服务器响应类型定义
MCPResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        """构建验证错误结果。"""
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果。"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        """构建处理错误结果。"""
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="processing",
            details=details,
        )


def _format_entry(entry: ImageEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "name": entry.name,
        "mime_type": entry.original.mime_type,
        "status": entry.status.value,
        "original_size": entry.original.size,
        "current_size": entry.current.size,
        "compression_ratio": round(entry.compression_ratio, 2),
        "fell_back": entry.fell_back,
        "preview": entry.preview.uri,
        "summary": entry.get_summary(),
    }


class BatchSessionService:
    """一个 MCP 会话对应的批量处理服务

    持有流水线并记录最近一次操作产生的事件，供工具响应返回。
    """

    def __init__(self, pipeline: BatchImagePipeline | None = None):
        self.pipeline = pipeline or BatchImagePipeline()
        self.events: list[PipelineEvent] = []
        self.pipeline.subscribe(self.events.append)

    def _drain_events(self) -> list[dict[str, Any]]:
        """取出并清空事件，压缩包字节不放进响应"""
        drained = [
            event.model_dump(exclude={"data"}, exclude_none=True, mode="json")
            for event in self.events
            if event.kind != EventKind.COMPRESSION_PROGRESS
        ]
        self.events.clear()
        return drained

    def add_images(self, paths: list[str], recursive: bool = True) -> MCPResponse:
        blobs = []
        unreadable: list[str] = []
        for file_path in iter_input_files(paths, recursive=recursive):
            try:
                blobs.append(load_blob(file_path))
            except OSError as e:
                logger.warning(
                    MessageFormatter.operation_failed("读取文件", file_path, e)
                )
                unreadable.append(str(file_path))

        outcome = self.pipeline.add(blobs)
        return {
            "success": outcome.status in (OutcomeStatus.SUCCESS, OutcomeStatus.PARTIAL),
            "status": outcome.status.value,
            "accepted": outcome.accepted,
            "rejected": outcome.rejected,
            "rejected_files": outcome.rejected_names,
            "unreadable_files": unreadable,
            "entry_ids": outcome.entry_ids,
            "events": self._drain_events(),
        }

    def list_images(self) -> MCPResponse:
        entries = self.pipeline.entries
        return {
            "success": True,
            "count": len(entries),
            "quality": self.pipeline.settings.quality,
            "max_dimension": self.pipeline.settings.max_dimension,
            "images": [_format_entry(entry) for entry in entries],
        }

    def remove_image(self, entry_id: str) -> MCPResponse:
        outcome = self.pipeline.remove(entry_id)
        return {
            "success": True,
            "removed": outcome.count,
            "status": outcome.status.value,
        }

    def clear_images(self) -> MCPResponse:
        outcome = self.pipeline.clear()
        return {
            "success": True,
            "removed": outcome.count,
            "status": outcome.status.value,
        }

    def set_quality(self, quality: float) -> MCPResponse:
        outcome = self.pipeline.set_quality(quality)
        if outcome.status == OutcomeStatus.FAILURE:
            return MCPResponseBuilder.validation_error(outcome.error or "", "quality")
        return {
            "success": True,
            "quality": self.pipeline.settings.quality,
            "size_budget_mb": self.pipeline.settings.size_budget_mb,
        }

    def set_max_dimension(self, pixels: int) -> MCPResponse:
        outcome = self.pipeline.set_max_dimension(pixels)
        if outcome.status == OutcomeStatus.FAILURE:
            return MCPResponseBuilder.validation_error(
                outcome.error or "", "max_dimension"
            )
        return {"success": True, "max_dimension": self.pipeline.settings.max_dimension}

    def compress_and_download(
        self, output_dir: str | None = None, include_previous: bool = False
    ) -> MCPResponse:
        outcome = self.pipeline.compress_and_download(include_previous=include_previous)
        events = self._drain_events()

        if outcome.status == OutcomeStatus.NOOP:
            return {
                "success": True,
                "status": outcome.status.value,
                "summary": outcome.get_summary(),
            }
        if outcome.status == OutcomeStatus.FAILURE or outcome.archive is None:
            response = MCPResponseBuilder.processing_error(
                outcome.error or "未知错误", "压缩并打包"
            )
            response["events"] = events
            return response

        target_dir = output_dir or get_config().archive.OUTPUT_DIR
        try:
            archive_path = PathResolver.resolve_archive_path(
                target_dir, outcome.archive.filename
            )
            archive_path.write_bytes(outcome.archive.data)
        except OSError as e:
            logger.error(
                MessageFormatter.operation_failed("写入压缩包", target_dir, e)
            )
            return MCPResponseBuilder.file_error(str(e), str(target_dir))

        logger.info(f"压缩包已写入: {archive_path}")
        return {
            "success": True,
            "status": outcome.status.value,
            "archive_path": str(archive_path),
            "archive_size": outcome.archive.size,
            "file_count": outcome.archive.file_count,
            "compressed_count": outcome.compressed_count,
            "fallback_ids": outcome.fallback_ids,
            "summary": outcome.get_summary(),
            "events": events,
        }


# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("批量图片压缩服务")

# 全局会话服务实例
service = BatchSessionService()


# ============================================================================
# 工具
# ============================================================================


@mcp.tool()
def add_images(paths: list[str], recursive: bool = True) -> MCPResponse:
    """添加图片到当前批次。

    目录会被展开，非图像文件会被拒绝并计数。

    Args:
        paths: 文件或目录路径列表
        recursive: 目录是否递归
    """
    try:
        return service.add_images(paths, recursive=recursive)
    except Exception as e:
        logger.error(MessageFormatter.operation_failed("添加图片", paths, e))
        return MCPResponseBuilder.processing_error(str(e), "添加图片")


@mcp.tool()
def list_images() -> MCPResponse:
    """列出当前批次中的图片及其状态。"""
    return service.list_images()


@mcp.tool()
def remove_image(entry_id: str) -> MCPResponse:
    """从批次中移除一张图片，不存在时不做任何事。"""
    return service.remove_image(entry_id)


@mcp.tool()
def clear_images() -> MCPResponse:
    """清空当前批次。"""
    return service.clear_images()


@mcp.tool()
def set_quality(quality: float) -> MCPResponse:
    """设置压缩质量（0.1-1.0，步长 0.05）。"""
    return service.set_quality(quality)


@mcp.tool()
def set_max_dimension(pixels: int) -> MCPResponse:
    """设置图片最长边的像素上限。"""
    return service.set_max_dimension(pixels)


@mcp.tool()
def compress_and_download(
    output_dir: str | None = None, include_previous: bool = False
) -> MCPResponse:
    """压缩所有未压缩的图片并打包为 zip 写入输出目录。

    Args:
        output_dir: 输出目录，默认取配置
        include_previous: 是否把之前已压缩的图片也打进包里
    """
    try:
        return service.compress_and_download(output_dir, include_previous)
    except Exception as e:
        logger.error(MessageFormatter.operation_failed("压缩并打包", "batch", e))
        return MCPResponseBuilder.processing_error(str(e), "压缩并打包")


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging()
    logger.info("启动批量图片压缩 MCP 服务器")
    try:
        mcp.run()
    finally:
        service.pipeline.dispose()


if __name__ == "__main__":
    main()
