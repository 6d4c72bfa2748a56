"""图像条目模型。

定义批量处理中单张图片的字节载荷、预览句柄和处理状态。
"""

from enum import Enum

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntryStatus(str, Enum):
    """条目处理状态"""

    PENDING = "pending"
    COMPRESSING = "compressing"
    COMPRESSED = "compressed"
    FAILED = "failed"


class ImageBlob(BaseModel):
    """不可变的字节载荷及其元数据"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="文件名")
    mime_type: str = Field(description="媒体类型")
    data: bytes = Field(repr=False, description="文件字节")

    @property
    def size(self) -> int:
        """字节大小"""
        return len(self.data)

    def get_size_human(self) -> str:
        """人类可读的文件大小"""
        return naturalsize(self.size, binary=True)


class PreviewHandle(BaseModel):
    """预览句柄，引用条目当前字节而不单独持有它们"""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(description="句柄标识")
    size: int = Field(ge=0, description="对应字节大小")


class ImageEntry(BaseModel):
    """单张图片在处理生命周期中的状态

    条目本身不可变，存储通过替换整个对象完成更新。
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="唯一标识，创建时分配，永不复用")
    original: ImageBlob = Field(description="原始载荷")
    current: ImageBlob = Field(description="当前载荷")
    preview: PreviewHandle = Field(description="当前载荷的预览句柄")
    compression_ratio: float = Field(1.0, ge=0, description="原始大小/当前大小")
    status: EntryStatus = Field(EntryStatus.PENDING, description="处理状态")
    fell_back: bool = Field(False, description="最近一次压缩是否回退到原图")
    error: str | None = Field(None, description="最近一次压缩的错误信息")

    @model_validator(mode="after")
    def validate_ratio_for_status(self) -> "ImageEntry":
        if (
            self.status in (EntryStatus.PENDING, EntryStatus.COMPRESSING)
            and self.compression_ratio != 1.0
        ):
            raise ValueError(f"{self.status.value} 状态的压缩比必须为 1")
        return self

    @property
    def name(self) -> str:
        """原始文件名"""
        return self.original.name

    @property
    def is_compressed(self) -> bool:
        return self.status == EntryStatus.COMPRESSED

    def get_summary(self) -> str:
        """条目摘要"""
        if self.status != EntryStatus.COMPRESSED:
            return f"{self.name}: {self.status.value}"

        summary = (
            f"{self.name}: {self.original.get_size_human()} → "
            f"{self.current.get_size_human()} ({self.compression_ratio:.1f}x)"
        )
        if self.fell_back:
            summary += " [回退原图]"
        return summary
