"""图像处理相关常量定义。

基于 Pillow 动态能力的图像格式管理，以及单图变换的固定参数。
"""

from typing import Final

from PIL import Image


class ImageFormats:
    """基于 Pillow 的动态图像格式管理"""

    # 只定义必要的别名映射（用户友好的别名）
    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
        # 相机写出的多帧 JPEG，按首帧重新编码
        "MPO": "JPEG",
    }

    # 只定义 Pillow 未提供的特殊 MIME 类型
    SPECIAL_MIME_TYPES: Final[dict[str, str]] = {
        "ICO": "image/x-icon",
        "PPM": "image/x-portable-pixmap",
    }

    # 可以按原格式重新编码的格式
    REENCODABLE_FORMATS: Final[set[str]] = {
        "JPEG",
        "PNG",
        "WEBP",
        "GIF",
        "BMP",
        "TIFF",
    }

    # 支持 quality 参数的有损格式
    LOSSY_FORMATS: Final[set[str]] = {"JPEG", "WEBP"}

    # 图像类媒体类型前缀
    IMAGE_MIME_PREFIX: Final[str] = "image/"

    @classmethod
    def get_mime_type(cls, format_name: str) -> str:
        """获取 MIME 类型，优先使用特殊映射"""
        Image.init()
        format_upper = format_name.upper()

        if format_upper in cls.SPECIAL_MIME_TYPES:
            return cls.SPECIAL_MIME_TYPES[format_upper]

        # Pillow 自带的映射
        if mime := Image.MIME.get(format_upper):
            return mime

        return f"image/{format_upper.lower()}"


class TransformDefaults:
    """单图变换相关默认值"""

    # 超出体积预算时的最大重试次数
    MAX_ITERATIONS: Final[int] = 10

    # 每次重试的质量与尺寸缩放系数
    STEP_FACTOR: Final[float] = 0.95

    MIN_QUALITY: Final[int] = 1
    MAX_QUALITY: Final[int] = 100


# 便捷访问函数
def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_mime_type(format_str: str) -> str:
    """获取格式的MIME类型"""
    return ImageFormats.get_mime_type(get_format_alias(format_str))


def is_image_mime_type(mime_type: str | None) -> bool:
    """判断媒体类型是否为图像"""
    return bool(mime_type) and mime_type.lower().startswith(
        ImageFormats.IMAGE_MIME_PREFIX
    )


def is_lossy_format(format_str: str) -> bool:
    """检查是否为支持质量参数的有损格式"""
    return get_format_alias(format_str) in ImageFormats.LOSSY_FORMATS
