"""单图压缩变换测试。"""

import os
from io import BytesIO

import pytest
from PIL import Image

from py_image_batch_mcp.core import compress_blob
from py_image_batch_mcp.core.formats import get_jpeg_params, get_save_parameters
from py_image_batch_mcp.exceptions import ProcessingError, UnsupportedFormatError
from py_image_batch_mcp.models import CompressionOptions, ImageBlob
from tests.conftest import make_blob, make_image_bytes


def _open(blob: ImageBlob) -> Image.Image:
    img = Image.open(BytesIO(blob.data))
    img.load()
    return img


def _noise_blob(size=(400, 400)) -> ImageBlob:
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=95)
    return ImageBlob(name="noise.jpg", mime_type="image/jpeg", data=buffer.getvalue())


class TestResize:
    """尺寸限制测试"""

    def test_downscales_to_max_dimension(self):
        """最长边缩放到上限，保持宽高比"""
        blob = make_blob("wide.jpg", size=(3000, 1000))
        options = CompressionOptions(
            target_quality=0.8, max_dimension=1000, max_size_mb=5
        )

        result = _open(compress_blob(blob, options))

        assert result.size[0] == 1000
        assert result.size[1] == pytest.approx(333, abs=1)

    def test_never_upscales(self, jpeg_blob, options):
        """小于上限的图片保持原尺寸"""
        result = _open(compress_blob(jpeg_blob, options))

        assert result.size == (200, 150)

    def test_budget_shrinks_dimensions(self):
        """超出体积预算时逐步缩小尺寸"""
        blob = _noise_blob()
        options = CompressionOptions(
            target_quality=0.9, max_dimension=1920, max_size_mb=0.005
        )

        compressed = compress_blob(blob, options)

        assert max(_open(compressed).size) < 400
        assert compressed.size < blob.size


class TestFormats:
    """格式保持测试"""

    def test_keeps_name_and_mime(self, jpeg_blob, options):
        result = compress_blob(jpeg_blob, options)

        assert result.name == jpeg_blob.name
        assert result.mime_type == jpeg_blob.mime_type
        assert _open(result).format == "JPEG"

    def test_png_keeps_transparency(self, png_blob, options):
        """PNG 重新编码后仍有 alpha 通道"""
        result = _open(compress_blob(png_blob, options))

        assert result.format == "PNG"
        assert result.mode == "RGBA"

    def test_multi_picture_jpeg(self):
        """相机写出的 MPO 按首帧重新编码为 JPEG"""
        first = Image.open(BytesIO(make_image_bytes((2400, 1800))))
        second = Image.open(BytesIO(make_image_bytes((2400, 1800))))
        buffer = BytesIO()
        first.save(buffer, format="MPO", save_all=True, append_images=[second])
        blob = ImageBlob(
            name="phone.jpg", mime_type="image/jpeg", data=buffer.getvalue()
        )
        assert Image.open(BytesIO(blob.data)).format == "MPO"
        options = CompressionOptions(
            target_quality=0.8, max_dimension=1920, max_size_mb=5
        )

        compressed = compress_blob(blob, options)

        result = _open(compressed)
        assert result.format == "JPEG"
        assert result.size == (1920, 1440)
        assert compressed.mime_type == "image/jpeg"
        assert compressed.size < blob.size

    def test_webp(self, options):
        blob = make_blob("photo.webp", fmt="WEBP")

        result = _open(compress_blob(blob, options))

        assert result.format == "WEBP"

    def test_lower_quality_yields_smaller_jpeg(self):
        """质量越低输出越小"""
        blob = make_blob("photo.jpg", size=(600, 400))
        high = CompressionOptions(target_quality=1.0, max_dimension=1920, max_size_mb=5)
        low = CompressionOptions(target_quality=0.2, max_dimension=1920, max_size_mb=5)

        assert compress_blob(blob, low).size < compress_blob(blob, high).size


class TestErrors:
    """错误映射测试"""

    def test_garbage_bytes(self, options):
        """无法识别的字节抛出 UnsupportedFormatError"""
        blob = ImageBlob(name="broken.jpg", mime_type="image/jpeg", data=b"garbage")

        with pytest.raises(UnsupportedFormatError):
            compress_blob(blob, options)

    def test_format_not_reencodable(self, options):
        """无法按原格式编码的图片被拒绝"""
        blob = make_blob("icon.ico", size=(32, 32), fmt="ICO")

        with pytest.raises(UnsupportedFormatError):
            compress_blob(blob, options)

    def test_truncated_image(self, options, jpeg_blob):
        """截断的图片数据在解码时失败"""
        blob = ImageBlob(
            name="cut.jpg",
            mime_type="image/jpeg",
            data=jpeg_blob.data[: jpeg_blob.size // 3],
        )

        with pytest.raises((ProcessingError, UnsupportedFormatError)):
            compress_blob(blob, options)


class TestSaveParameters:
    """保存参数测试"""

    def test_jpeg_quality_100_capped(self):
        assert get_jpeg_params(100)["quality"] == 98

    def test_jpeg_subsampling(self):
        assert get_jpeg_params(90)["subsampling"] == 1
        assert get_jpeg_params(60)["subsampling"] == 2

    def test_png_ignores_quality(self):
        assert "quality" not in get_save_parameters("PNG", 50)

    def test_unknown_format(self):
        assert get_save_parameters("XYZ", 50) == {}
