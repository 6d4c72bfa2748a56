"""文件工具模块。

把磁盘上的文件读入为 ImageBlob，供宿主层使用。
"""

import mimetypes
from collections.abc import Iterable, Iterator
from pathlib import Path

from PIL import Image

from ..models.constants import get_mime_type
from ..models.image_entry import ImageBlob
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()

# 未知类型时使用的媒体类型
DEFAULT_MIME_TYPE = "application/octet-stream"


def iter_input_files(
    paths: Iterable[str | Path],
    recursive: bool = True,
) -> Iterator[Path]:
    """展开输入路径，目录中的所有普通文件都会产出。

    不在这里按扩展名过滤，非图像文件交给存储层统计为拒绝。

    Args:
        paths: 文件或目录路径
        recursive: 目录是否递归

    Yields:
        Path: 文件路径
    """
    pattern = "**/*" if recursive else "*"

    for raw_path in paths:
        path = Path(raw_path)
        if path.is_file():
            yield path
        elif path.is_dir():
            for file_path in sorted(path.glob(pattern)):
                if file_path.is_file() and not file_path.name.startswith("."):
                    yield file_path
        else:
            logger.warning(MessageFormatter.file_not_found(path))


def get_image_mime_type(file_path: str | Path) -> str | None:
    """获取图片文件的 MIME 类型

    Args:
        file_path: 图片文件路径

    Returns:
        str | None: MIME 类型，如 'image/jpeg'，无法识别时返回 None
    """
    try:
        with Image.open(file_path) as img:
            if img.format:
                return get_mime_type(img.format)
            return None
    except Exception as e:
        logger.debug(MessageFormatter.operation_failed("获取 MIME 类型", file_path, e))
        return None


def detect_mime_type(file_path: str | Path) -> str:
    """先按内容识别，再按扩展名猜测"""
    if mime_type := get_image_mime_type(file_path):
        return mime_type

    guessed, _ = mimetypes.guess_type(str(file_path))
    return guessed or DEFAULT_MIME_TYPE


def load_blob(file_path: str | Path) -> ImageBlob:
    """读取文件为 ImageBlob

    Raises:
        OSError: 文件无法读取
    """
    file_path = Path(file_path)
    return ImageBlob(
        name=file_path.name,
        mime_type=detect_mime_type(file_path),
        data=file_path.read_bytes(),
    )
