"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CompressionDefaults:
    """压缩相关的默认配置"""

    # 质量设置（0-1 的分数）
    QUALITY: float = 0.8
    MIN_QUALITY: float = 0.1
    MAX_QUALITY: float = 1.0
    QUALITY_STEP: float = 0.05

    # 尺寸限制
    MAX_DIMENSION: int = 1920

    # 并发设置
    GROUP_SIZE: int = 4
    SCHEDULING: str = "group"

    # 回退结果是否标记为 Failed（可重试）
    FALLBACK_AS_FAILED: bool = False


@dataclass(frozen=True)
class ArchiveDefaults:
    """打包相关的默认配置"""

    FILENAME: str = "compressed_images.zip"
    # 图片本身已压缩，默认只存储不再压缩
    DEFLATE: bool = False
    OUTPUT_DIR: str = "."


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_image_batch.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.compression = CompressionDefaults()
        self.archive = ArchiveDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 压缩配置
        if quality := os.getenv("PIB_QUALITY"):
            object.__setattr__(self.compression, "QUALITY", float(quality))

        if max_dimension := os.getenv("PIB_MAX_DIMENSION"):
            object.__setattr__(self.compression, "MAX_DIMENSION", int(max_dimension))

        if group_size := os.getenv("PIB_GROUP_SIZE"):
            object.__setattr__(self.compression, "GROUP_SIZE", int(group_size))

        if scheduling := os.getenv("PIB_SCHEDULING"):
            object.__setattr__(self.compression, "SCHEDULING", scheduling.lower())

        if fallback_as_failed := os.getenv("PIB_FALLBACK_AS_FAILED"):
            object.__setattr__(
                self.compression, "FALLBACK_AS_FAILED", _env_flag(fallback_as_failed)
            )

        # 打包配置
        if archive_filename := os.getenv("PIB_ARCHIVE_FILENAME"):
            object.__setattr__(self.archive, "FILENAME", archive_filename)

        if output_dir := os.getenv("PIB_OUTPUT_DIR"):
            object.__setattr__(self.archive, "OUTPUT_DIR", output_dir)

        # 日志配置
        if log_level := os.getenv("PIB_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("PIB_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _env_flag(enable_file_log)
            )


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
