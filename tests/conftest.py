"""测试配置文件。

提供测试所需的fixtures和配置，测试图片全部在内存中用 Pillow 生成。
"""

import threading
import time
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from py_image_batch_mcp.config import reset_config
from py_image_batch_mcp.exceptions import ProcessingError
from py_image_batch_mcp.models import CompressionOptions, ImageBlob


def make_image_bytes(
    size: tuple[int, int] = (200, 150),
    fmt: str = "JPEG",
    mode: str = "RGB",
) -> bytes:
    """生成带图案的图片字节"""
    color = (0, 0, 0, 0) if mode == "RGBA" else "white"
    img = Image.new(mode, size, color=color)
    draw = ImageDraw.Draw(img)
    width, height = size
    for i in range(20):
        x, y = (i * 37) % width, (i * 23) % height
        fill = (i * 11 % 256, i * 29 % 256, i * 47 % 256)
        if mode == "RGBA":
            fill = (*fill, 200)
        draw.rectangle([x, y, x + width // 5, y + height // 5], fill=fill)

    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_blob(
    name: str = "photo.jpg",
    size: tuple[int, int] = (200, 150),
    fmt: str = "JPEG",
    mode: str = "RGB",
) -> ImageBlob:
    """生成图片载荷"""
    data = make_image_bytes(size, fmt, mode)
    mime_type = Image.MIME.get(fmt, f"image/{fmt.lower()}")
    return ImageBlob(name=name, mime_type=mime_type, data=data)


def make_text_blob(name: str = "notes.txt") -> ImageBlob:
    """生成非图像载荷"""
    return ImageBlob(name=name, mime_type="text/plain", data=b"not an image")


def halving_transform(blob: ImageBlob, options: CompressionOptions) -> ImageBlob:
    """把字节减半的假变换，压缩比恒为 2"""
    del options
    return ImageBlob(
        name=blob.name, mime_type=blob.mime_type, data=blob.data[: blob.size // 2]
    )


def failing_transform(blob: ImageBlob, options: CompressionOptions) -> ImageBlob:
    """文件名包含 bad 时失败的假变换"""
    if "bad" in blob.name:
        raise ProcessingError(f"无法处理 {blob.name}")
    return halving_transform(blob, options)


class ConcurrencyProbe:
    """记录变换调用的开始/结束顺序和最大并发数"""

    def __init__(self, delay: float = 0.02):
        self.delay = delay
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.timeline: list[tuple[str, str]] = []

    def __call__(self, blob: ImageBlob, options: CompressionOptions) -> ImageBlob:
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.timeline.append(("start", blob.name))
        time.sleep(self.delay)
        with self.lock:
            self.active -= 1
            self.timeline.append(("end", blob.name))
        return halving_transform(blob, options)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """隔离环境变量对全局配置的影响"""
    for key in (
        "PIB_QUALITY",
        "PIB_MAX_DIMENSION",
        "PIB_GROUP_SIZE",
        "PIB_SCHEDULING",
        "PIB_FALLBACK_AS_FAILED",
        "PIB_ARCHIVE_FILENAME",
        "PIB_OUTPUT_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def options() -> CompressionOptions:
    return CompressionOptions(target_quality=0.8, max_dimension=1920, max_size_mb=0.7)


@pytest.fixture
def jpeg_blob() -> ImageBlob:
    return make_blob("photo.jpg")


@pytest.fixture
def png_blob() -> ImageBlob:
    return make_blob("logo.png", size=(120, 120), fmt="PNG", mode="RGBA")


@pytest.fixture
def text_blob() -> ImageBlob:
    return make_text_blob()
