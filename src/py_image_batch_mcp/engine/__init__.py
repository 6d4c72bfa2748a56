"""批量压缩处理引擎模块。

包含设置派生、有界并发执行和批量压缩等核心处理逻辑。
"""

from .compression_engine import CompressionEngine
from .concurrent_executor import ConcurrentExecutor
from .settings import SettingsProvider, derive_size_budget


__all__ = [
    "CompressionEngine",
    "ConcurrentExecutor",
    "SettingsProvider",
    "derive_size_budget",
]
