"""格式处理器模块。

按原格式重新编码前的色彩模式准备，以及各格式的保存参数。
"""

import logging
from typing import Any

from PIL import Image

from ..models.constants import ImageFormats


logger = logging.getLogger(__name__)


class FormatProcessor:
    """格式处理器"""

    # JPEG 合成透明区域时使用的背景色
    JPEG_BACKGROUND: tuple[int, int, int] = (255, 255, 255)

    def prepare_for_format(self, img: Image.Image, target_format: str) -> Image.Image:
        """为目标格式准备图片

        Args:
            img: PIL图片对象
            target_format: 目标格式

        Returns:
            Image.Image: 处理后的图片对象
        """
        match target_format:
            case "JPEG":
                return self._prepare_for_jpeg(img)
            case "PNG" | "TIFF":
                return self._prepare_for_png(img)
            case "WEBP":
                return self._prepare_for_webp(img)
            case "BMP":
                return self._prepare_for_bmp(img)
            case _:
                return img

    def _prepare_for_jpeg(self, img: Image.Image) -> Image.Image:
        """为JPEG格式准备图片"""
        # JPEG不支持透明度，合成到背景上
        if img.mode == "P" and "transparency" in img.info:
            img = img.convert("RGBA")
        if img.mode == "LA":
            img = img.convert("RGBA")

        if img.mode == "RGBA":
            rgb_img = Image.new("RGB", img.size, self.JPEG_BACKGROUND)
            rgb_img.paste(img, mask=img.split()[-1])
            return rgb_img

        # 灰度保持 L，其余模式转换为RGB
        if img.mode not in ("RGB", "L"):
            return img.convert("RGB")

        return img

    def _prepare_for_png(self, img: Image.Image) -> Image.Image:
        """为PNG格式准备图片"""
        if img.mode == "P":
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")

        if img.mode == "CMYK":
            return img.convert("RGB")

        return img

    def _prepare_for_webp(self, img: Image.Image) -> Image.Image:
        """为WebP格式准备图片"""
        # WebP支持RGB和RGBA
        if img.mode == "P":
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")
        if img.mode == "LA":
            return img.convert("RGBA")
        if img.mode not in ("RGB", "RGBA"):
            return img.convert("RGB")

        return img

    def _prepare_for_bmp(self, img: Image.Image) -> Image.Image:
        """BMP 不支持 alpha 以外的很多模式，统一转换"""
        if img.mode not in ("1", "L", "P", "RGB"):
            return img.convert("RGB")
        return img


def get_save_parameters(format_name: str, quality: int) -> dict[str, Any]:
    """获取保存参数

    Args:
        format_name: Pillow 格式名
        quality: 1-100 的质量值，仅对有损格式生效

    Returns:
        dict: 传给 Image.save 的参数（不含 format）
    """
    match format_name:
        case "JPEG":
            return get_jpeg_params(quality)
        case "WEBP":
            return {"quality": quality, "method": 4}
        case "PNG":
            return {"optimize": True, "compress_level": 9}
        case "GIF":
            return {"optimize": True}
        case "TIFF":
            return {"compression": "tiff_adobe_deflate"}
        case _:
            return {}


def get_jpeg_params(quality: int) -> dict[str, Any]:
    """获取JPEG压缩参数

    - quality: 100 会禁用部分JPEG压缩算法，降到 98
    - subsampling: 高质量时使用 4:2:2，否则 4:2:0
    """
    jpeg_quality = max(1, min(100, quality))
    if jpeg_quality == 100:
        logger.debug("JPEG质量100会禁用部分压缩算法，调整为98")
        jpeg_quality = 98

    return {
        "quality": jpeg_quality,
        "optimize": True,
        "progressive": True,
        "subsampling": 1 if jpeg_quality >= 85 else 2,
    }


def is_reencodable(format_name: str | None) -> bool:
    """格式能否按原格式重新编码"""
    return format_name in ImageFormats.REENCODABLE_FORMATS
