"""压缩包构建模块。

把一组条目的当前字节打包成单个 zip 供下载。
"""

import zipfile
from collections.abc import Sequence
from io import BytesIO

from ..config import get_config
from ..exceptions import ArchiveError
from ..models.compression_result import ArchiveResult
from ..models.image_entry import ImageEntry
from ..utils.logging_helpers import get_logger


logger = get_logger()


class ArchiveBuilder:
    """压缩包构建器

    包内文件按条目原始文件名命名。重名不去重：打包顺序中靠后的条目覆盖
    靠前的条目，文件位置保持首次出现的位置，因此文件数可能少于条目数。
    """

    def __init__(self, filename: str | None = None, deflate: bool | None = None):
        """初始化构建器

        Args:
            filename: 整个压缩包的固定文件名
            deflate: 是否对包内文件再做 deflate 压缩
        """
        archive_config = get_config().archive
        self.filename = filename or archive_config.FILENAME
        self.deflate = archive_config.DEFLATE if deflate is None else deflate

    def build_archive(self, entries: Sequence[ImageEntry]) -> ArchiveResult:
        """打包条目的当前字节

        Args:
            entries: 条目快照，按打包顺序

        Returns:
            ArchiveResult: 压缩包字节和文件名

        Raises:
            ArchiveError: 打包失败，不产生部分结果
        """
        members: dict[str, bytes] = {}
        overwritten: list[str] = []
        for entry in entries:
            name = entry.original.name
            if name in members:
                logger.warning(f"压缩包内文件重名，后者覆盖前者: {name}")
                overwritten.append(name)
            members[name] = entry.current.data

        compression = zipfile.ZIP_DEFLATED if self.deflate else zipfile.ZIP_STORED
        buffer = BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
                for name, data in members.items():
                    archive.writestr(name, data)
        except (zipfile.LargeZipFile, OSError, ValueError) as e:
            raise ArchiveError(f"打包失败: {e}", subject=self.filename) from e

        result = ArchiveResult(
            data=buffer.getvalue(),
            filename=self.filename,
            file_count=len(members),
            entry_count=len(entries),
            overwritten_names=overwritten,
        )
        logger.info(f"打包完成 {result.get_summary()}")
        return result
