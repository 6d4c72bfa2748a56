"""文件命名工具模块。

提供压缩包输出路径的生成功能。
"""

import itertools
from pathlib import Path


class PathResolver:
    """路径解析器"""

    @staticmethod
    def resolve_archive_path(output_dir: str | Path, filename: str) -> Path:
        """解析压缩包的输出路径，已存在时追加数字后缀

        Args:
            output_dir: 输出目录
            filename: 建议的文件名

        Returns:
            Path: 不与现有文件冲突的路径
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        return PathResolver.ensure_unique_path(output_dir / filename)

    @staticmethod
    def ensure_unique_path(path: Path) -> Path:
        """确保路径唯一，如果文件已存在则添加数字后缀

        Args:
            path: 原始路径

        Returns:
            Path: 唯一的路径
        """
        if not path.exists():
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if not new_path.exists():
                return new_path

        # 理论上永远不会到达这里，但为了类型检查器
        return path  # pragma: no cover
