"""压缩设置模块。

保存质量和尺寸配置，并派生引擎级压缩参数。
"""

import logging
import math

from pydantic import ValidationError as PydanticValidationError

from ..config import CompressionDefaults, get_config
from ..exceptions import ValidationError
from ..models.compression_config import CompressionOptions
from ..utils.message_formatter import format_validation_error


logger = logging.getLogger(__name__)


def derive_size_budget(quality: float) -> float:
    """由质量派生单张图片的体积预算（MB）

    质量越高预算越大：低于 0.5 时固定 0.5，否则为 (1 - quality) + 0.5。
    """
    return 0.5 if quality < 0.5 else (1 - quality) + 0.5


class SettingsProvider:
    """压缩设置提供者

    quality 取值 [0.1, 1.0]，步长 0.05；max_dimension 为正整数像素。
    """

    def __init__(
        self,
        quality: float | None = None,
        max_dimension: int | None = None,
        defaults: CompressionDefaults | None = None,
    ):
        self.defaults = defaults or get_config().compression
        self._quality = self.defaults.QUALITY
        self._max_dimension = self.defaults.MAX_DIMENSION

        self.set_quality(self.defaults.QUALITY if quality is None else quality)
        self.set_max_dimension(
            self.defaults.MAX_DIMENSION if max_dimension is None else max_dimension
        )

    @property
    def quality(self) -> float:
        return self._quality

    @property
    def max_dimension(self) -> int:
        return self._max_dimension

    @property
    def size_budget_mb(self) -> float:
        return derive_size_budget(self._quality)

    def set_quality(self, fraction: float) -> float:
        """设置质量，按步长取整

        Returns:
            float: 实际生效的质量值

        Raises:
            ValidationError: 非数字或超出范围
        """
        if isinstance(fraction, bool) or not isinstance(fraction, int | float):
            raise ValidationError(
                format_validation_error("quality", fraction, "0.1-1.0 的数字")
            )

        # 允许浮点误差
        tolerance = 1e-9
        if (
            math.isnan(fraction)
            or fraction < self.defaults.MIN_QUALITY - tolerance
            or fraction > self.defaults.MAX_QUALITY + tolerance
        ):
            raise ValidationError(
                format_validation_error(
                    "quality",
                    fraction,
                    f"{self.defaults.MIN_QUALITY}-{self.defaults.MAX_QUALITY}",
                )
            )

        step = self.defaults.QUALITY_STEP
        snapped = round(round(fraction / step) * step, 2)
        self._quality = min(
            self.defaults.MAX_QUALITY, max(self.defaults.MIN_QUALITY, snapped)
        )
        if self._quality != fraction:
            logger.debug(f"质量 {fraction} 按步长 {step} 调整为 {self._quality}")
        return self._quality

    def set_max_dimension(self, pixels: int) -> int:
        """设置最长边像素上限

        Raises:
            ValidationError: 不是正整数
        """
        if isinstance(pixels, bool) or not isinstance(pixels, int) or pixels <= 0:
            raise ValidationError(
                format_validation_error("max_dimension", pixels, "正整数像素")
            )

        self._max_dimension = pixels
        return pixels

    def get_compression_options(self) -> CompressionOptions:
        """派生引擎参数

        Raises:
            ValidationError: 参数组合无效
        """
        try:
            return CompressionOptions(
                target_quality=self._quality,
                max_dimension=self._max_dimension,
                max_size_mb=self.size_budget_mb,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"压缩参数无效: {e}") from e
