"""处理结果模型。

定义压缩、打包以及各公开操作返回的分类结果。
"""

from enum import Enum
from typing import Any

from humanize import naturalsize
from pydantic import BaseModel, Field

from .image_entry import EntryStatus, ImageBlob


class OutcomeStatus(str, Enum):
    """公开操作的结果分类"""

    SUCCESS = "success"
    PARTIAL = "partial"  # 部分成功，附带计数
    FAILURE = "failure"
    NOOP = "noop"  # 没有可处理的对象


class BaseResult(BaseModel):
    """结果基类，包含通用字段和方法"""

    success: bool = Field(description="是否成功")
    error: str | None = Field(None, description="错误信息")

    def is_successful(self) -> bool:
        """检查是否成功"""
        return self.success and self.error is None

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """格式化文件大小为人类可读格式"""
        return naturalsize(size_bytes, binary=True)


class ResultCollection(BaseResult):
    """结果集合基类，提供通用的统计方法"""

    results: list[Any] = Field(description="结果列表")

    def get_successful_items(self) -> list[Any]:
        """获取成功的结果项"""
        return [r for r in self.results if getattr(r, "success", False)]

    def get_failed_items(self) -> list[Any]:
        """获取失败的结果项"""
        return [r for r in self.results if not getattr(r, "success", False)]

    def get_total_count(self) -> int:
        """获取总数量"""
        return len(self.results)

    def get_success_count(self) -> int:
        """获取成功数量"""
        return len(self.get_successful_items())

    def get_failure_count(self) -> int:
        """获取失败数量"""
        return len(self.get_failed_items())


class EntryCompressionResult(BaseResult):
    """单个条目的压缩结果

    回退时 success 为 False，但 blob 仍是可用的原始字节。
    """

    entry_id: str = Field(description="派发时捕获的条目标识")
    original: ImageBlob = Field(description="原始载荷")
    blob: ImageBlob = Field(description="压缩后（或回退的原始）载荷")
    ratio: float = Field(ge=0, description="原始大小/结果大小，不做截断")
    status: EntryStatus = Field(description="终态")
    fell_back: bool = Field(False, description="是否回退到原图")

    def get_size_saved(self) -> int:
        """节省的字节数，变大时为负"""
        return self.original.size - self.blob.size

    def get_summary(self) -> str:
        """压缩结果摘要"""
        if self.fell_back:
            return f"{self.original.name}: 回退原图 ({self.error})"

        return (
            f"{self.original.name}: {self.format_size(self.original.size)} → "
            f"{self.format_size(self.blob.size)} ({self.ratio:.1f}x)"
        )


class CompressionBatchResult(ResultCollection):
    """一次 compress 调用的全部结果"""

    results: list[EntryCompressionResult] = Field(
        default_factory=list, description="按输入顺序排列的结果"
    )
    skipped_ids: list[str] = Field(
        default_factory=list, description="已压缩而被跳过的条目"
    )

    def get_fallback_ids(self) -> list[str]:
        """回退到原图的条目"""
        return [r.entry_id for r in self.results if r.fell_back]

    def get_total_size_saved(self) -> int:
        return sum(r.get_size_saved() for r in self.results)

    def get_summary(self) -> str:
        """批量压缩摘要"""
        total = self.get_total_count()
        fallbacks = len(self.get_fallback_ids())
        return (
            f"压缩 {total - fallbacks}/{total} 张图片，"
            f"回退 {fallbacks} 张，跳过 {len(self.skipped_ids)} 张，"
            f"总节省 {self.format_size(max(0, self.get_total_size_saved()))}"
        )


class AddOutcome(BaseModel):
    """add 操作结果"""

    status: OutcomeStatus = Field(description="结果分类")
    accepted: int = Field(0, ge=0, description="接受的文件数")
    rejected: int = Field(0, ge=0, description="拒绝的文件数")
    entry_ids: list[str] = Field(default_factory=list, description="新建条目标识")
    rejected_names: list[str] = Field(
        default_factory=list, description="被拒绝的文件名"
    )


class ArchiveResult(BaseModel):
    """打包结果"""

    data: bytes = Field(repr=False, description="压缩包字节")
    filename: str = Field(description="建议的下载文件名")
    file_count: int = Field(ge=0, description="包内文件数")
    entry_count: int = Field(ge=0, description="参与打包的条目数")
    overwritten_names: list[str] = Field(
        default_factory=list, description="因重名被覆盖的文件名"
    )

    @property
    def size(self) -> int:
        return len(self.data)

    def get_summary(self) -> str:
        summary = (
            f"{self.filename}: {self.file_count} 个文件, "
            f"{naturalsize(self.size, binary=True)}"
        )
        if self.overwritten_names:
            summary += f"（{len(self.overwritten_names)} 个重名文件被覆盖）"
        return summary


class OperationOutcome(BaseModel):
    """简单操作（删除、清空、设置）的结果"""

    status: OutcomeStatus = Field(description="结果分类")
    count: int = Field(0, ge=0, description="受影响的条目数")
    error: str | None = Field(None, description="错误信息")


class PipelineOutcome(BaseModel):
    """压缩并打包下载的整体结果"""

    status: OutcomeStatus = Field(description="结果分类")
    compressed_count: int = Field(0, ge=0, description="处理的条目数")
    fallback_ids: list[str] = Field(
        default_factory=list, description="回退到原图的条目"
    )
    archive: ArchiveResult | None = Field(None, description="打包结果")
    error: str | None = Field(None, description="错误信息")

    def get_summary(self) -> str:
        match self.status:
            case OutcomeStatus.NOOP:
                return "没有需要压缩的图片"
            case OutcomeStatus.FAILURE:
                return f"处理失败: {self.error}"
            case _:
                summary = f"已处理 {self.compressed_count} 张图片"
                if self.fallback_ids:
                    summary += f"，其中 {len(self.fallback_ids)} 张回退原图"
                if self.archive:
                    summary += f"，{self.archive.get_summary()}"
                return summary
