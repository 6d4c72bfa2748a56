"""压缩配置模型。

定义传给压缩引擎的派生参数和调度方式。
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .constants import TransformDefaults


class SchedulingMode(str, Enum):
    """并发调度方式"""

    GROUP = "group"  # 固定分组，整组完成后再提交下一组
    POOL = "pool"  # 有界工作池，任意任务完成即补位


class CompressionOptions(BaseModel):
    """引擎级压缩参数，由 SettingsProvider 派生"""

    model_config = ConfigDict(frozen=True)

    target_quality: float = Field(ge=0.0, le=1.0, description="目标质量 0-1")
    max_dimension: int = Field(gt=0, description="最长边像素上限")
    max_size_mb: float = Field(gt=0, description="单张图片体积预算（MB）")

    @property
    def encoder_quality(self) -> int:
        """映射到 Pillow 的 1-100 质量值"""
        return min(
            TransformDefaults.MAX_QUALITY,
            max(TransformDefaults.MIN_QUALITY, round(self.target_quality * 100)),
        )

    @property
    def max_size_bytes(self) -> int:
        """体积预算（字节）"""
        return int(self.max_size_mb * 1024 * 1024)
