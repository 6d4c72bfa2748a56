"""单图压缩变换模块。

对单个 ImageBlob 执行缩放和按体积预算的重新编码，是引擎调用的变换原语。
变换只返回新字节，不接触任何共享状态，可以安全地在工作线程中运行。
"""

from io import BytesIO

from PIL import Image, ImageOps

from ..exceptions import ProcessingError, UnsupportedFormatError, handle_image_errors
from ..models.compression_config import CompressionOptions
from ..models.constants import TransformDefaults, get_format_alias, is_lossy_format
from ..models.image_entry import ImageBlob
from ..utils.logging_helpers import get_logger
from .formats import FormatProcessor, get_save_parameters, is_reencodable


logger = get_logger()

_format_processor = FormatProcessor()


@handle_image_errors("图像压缩变换")
def compress_blob(blob: ImageBlob, options: CompressionOptions) -> ImageBlob:
    """压缩单张图片。

    先把最长边限制到 max_dimension，再按原格式编码；输出超出体积预算时
    逐步降低质量和尺寸重试，最多 MAX_ITERATIONS 次。输出可能比原图更大，
    这里不做回退判断。

    Args:
        blob: 原始载荷
        options: 压缩参数

    Returns:
        ImageBlob: 同名同类型的新载荷

    Raises:
        UnsupportedFormatError: 无法识别或无法按原格式编码
        ProcessingError: 解码或编码失败
    """
    with Image.open(BytesIO(blob.data)) as source:
        target_format = get_format_alias(source.format)
        if not is_reencodable(target_format):
            raise UnsupportedFormatError(f"不支持重新编码的格式: {target_format}")

        img = ImageOps.exif_transpose(source)
        img = _fit_within(img, options.max_dimension)
        img = _format_processor.prepare_for_format(img, target_format)

        quality = options.encoder_quality
        data = _encode(img, target_format, quality)

        iteration = 1
        while (
            len(data) > options.max_size_bytes
            and iteration < TransformDefaults.MAX_ITERATIONS
        ):
            if is_lossy_format(target_format):
                quality = max(
                    TransformDefaults.MIN_QUALITY,
                    int(quality * TransformDefaults.STEP_FACTOR),
                )
            img = _scale(img, TransformDefaults.STEP_FACTOR)
            data = _encode(img, target_format, quality)
            iteration += 1

        if len(data) > options.max_size_bytes:
            logger.debug(
                f"{blob.name} 经过 {iteration} 次尝试仍超出体积预算 "
                f"({len(data)} > {options.max_size_bytes})"
            )

    if not data:
        raise ProcessingError(f"编码结果为空: {blob.name}")

    return ImageBlob(name=blob.name, mime_type=blob.mime_type, data=data)


def _encode(img: Image.Image, target_format: str, quality: int) -> bytes:
    buffer = BytesIO()
    params = get_save_parameters(target_format, quality)
    img.save(buffer, format=target_format, **params)
    return buffer.getvalue()


def _fit_within(img: Image.Image, max_dimension: int) -> Image.Image:
    """按比例缩小到最长边不超过 max_dimension，不放大"""
    width, height = img.size
    longest = max(width, height)
    if longest <= max_dimension:
        return img

    ratio = max_dimension / longest
    new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
    return img.resize(new_size, Image.Resampling.LANCZOS)


def _scale(img: Image.Image, factor: float) -> Image.Image:
    width, height = img.size
    new_size = (max(1, int(width * factor)), max(1, int(height * factor)))
    if new_size == img.size:
        return img
    return img.resize(new_size, Image.Resampling.LANCZOS)
