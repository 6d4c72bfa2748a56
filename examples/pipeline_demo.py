#!/usr/bin/env python3
"""批量压缩流水线演示脚本。

展示 py_image_batch_mcp 库的核心功能，包括：
- 添加图片（非图像文件被拒绝）
- 订阅流水线事件
- 调整质量和尺寸
- 压缩并打包为 zip
"""

from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw

from py_image_batch_mcp import (
    BatchImagePipeline,
    EventKind,
    ImageBlob,
    OutcomeStatus,
    PipelineEvent,
)
from py_image_batch_mcp.utils import PathResolver, configure_logging


def get_output_dir() -> Path:
    """获取输出目录 - 使用项目的 tmp 目录"""
    project_root = Path(__file__).parent.parent
    output_dir = project_root / "tmp" / "examples"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def create_sample_blob(name: str, size: tuple[int, int], fmt: str) -> ImageBlob:
    """在内存中生成示例图片"""
    img = Image.new("RGB", size, "white")
    draw = ImageDraw.Draw(img)
    for i in range(0, size[0], 40):
        draw.line([(i, 0), (size[0] - i, size[1])], fill=(i % 256, 80, 160), width=6)

    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return ImageBlob(
        name=name, mime_type=Image.MIME[fmt], data=buffer.getvalue()
    )


def print_event(event: PipelineEvent) -> None:
    """把事件打印到终端"""
    match event.kind:
        case EventKind.FILES_ADDED:
            print(f"  ➕ 添加 {event.count} 张图片")
        case EventKind.FILES_REJECTED:
            print(f"  ⚠️ 拒绝 {event.count} 个非图像文件")
        case EventKind.COMPRESSION_STARTED:
            print(f"  🚀 开始压缩 {event.count} 张图片")
        case EventKind.COMPRESSION_PROGRESS:
            print(f"  ⏳ {event.done}/{event.total}")
        case EventKind.COMPRESSION_ERROR:
            print(f"  ❌ {event.entry_id} 回退原图: {event.error}")
        case EventKind.COMPRESSION_COMPLETE:
            print(f"  ✅ 压缩完成 {event.count} 张")
        case EventKind.ARCHIVE_READY:
            print(f"  📦 {event.filename} 已生成")
        case EventKind.ARCHIVE_ERROR:
            print(f"  ❌ 打包失败: {event.error}")


def demo_batch_pipeline():
    """演示完整的添加 → 压缩 → 打包流程"""
    print("\n📁 批量压缩演示")
    print("-" * 30)

    files = [
        create_sample_blob("large.jpg", (3200, 2400), "JPEG"),
        create_sample_blob("medium.png", (1200, 800), "PNG"),
        create_sample_blob("small.webp", (400, 300), "WEBP"),
        ImageBlob(name="notes.txt", mime_type="text/plain", data=b"hello"),
    ]

    with BatchImagePipeline() as pipeline:
        pipeline.subscribe(print_event)
        pipeline.set_quality(0.7)
        pipeline.set_max_dimension(1280)
        pipeline.add(files)

        outcome = pipeline.compress_and_download()
        print(f"\n{outcome.get_summary()}")

        if outcome.status in (OutcomeStatus.SUCCESS, OutcomeStatus.PARTIAL):
            archive_path = PathResolver.resolve_archive_path(
                get_output_dir(), outcome.archive.filename
            )
            archive_path.write_bytes(outcome.archive.data)
            print(f"💾 已写入: {archive_path}")

        for entry in pipeline.entries:
            print(f"  - {entry.get_summary()}")

        # 第二次调用没有需要压缩的图片
        again = pipeline.compress_and_download()
        print(f"\n再次调用: {again.get_summary()}")


def main():
    """主函数"""
    print("🖼️  批量图片压缩演示")
    print("=" * 50)
    configure_logging()

    try:
        demo_batch_pipeline()
        print("\n✅ 演示完成！")

    except Exception as e:
        print(f"\n❌ 演示过程中出现错误: {e}")
        raise


if __name__ == "__main__":
    main()
