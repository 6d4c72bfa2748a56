"""预览句柄管理模块。

每个句柄对应一份字节载荷，获取和释放严格成对。
"""

import threading
import uuid
from typing import Any

from ..models.image_entry import ImageBlob, PreviewHandle
from ..utils.logging_helpers import get_logger


logger = get_logger()


class PreviewRegistry:
    """预览句柄注册表

    句柄只在存活期间可以解析出字节，释放后的句柄再次释放是空操作。
    """

    URI_SCHEME = "preview"

    def __init__(self):
        self._live: dict[str, ImageBlob] = {}
        self._lock = threading.Lock()
        self.acquired_total = 0
        self.released_total = 0

    def acquire(self, blob: ImageBlob) -> PreviewHandle:
        """为载荷创建新句柄"""
        handle = PreviewHandle(
            uri=f"{self.URI_SCHEME}:{uuid.uuid4().hex}", size=blob.size
        )
        with self._lock:
            self._live[handle.uri] = blob
            self.acquired_total += 1
        return handle

    def release(self, handle: PreviewHandle) -> bool:
        """释放句柄

        Returns:
            bool: 本次调用是否真正释放了句柄
        """
        with self._lock:
            if self._live.pop(handle.uri, None) is None:
                return False
            self.released_total += 1
        return True

    def replace(self, old: PreviewHandle, blob: ImageBlob) -> PreviewHandle:
        """释放旧句柄并为新载荷获取句柄，中间状态对外不可见"""
        new_handle = PreviewHandle(
            uri=f"{self.URI_SCHEME}:{uuid.uuid4().hex}", size=blob.size
        )
        with self._lock:
            if self._live.pop(old.uri, None) is not None:
                self.released_total += 1
            self._live[new_handle.uri] = blob
            self.acquired_total += 1
        return new_handle

    def resolve(self, uri: str) -> ImageBlob | None:
        """解析存活句柄对应的载荷"""
        with self._lock:
            return self._live.get(uri)

    def is_live(self, handle: PreviewHandle) -> bool:
        with self._lock:
            return handle.uri in self._live

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._live)

    def dispose(self) -> int:
        """释放所有存活句柄"""
        with self._lock:
            count = len(self._live)
            self._live.clear()
            self.released_total += count

        if count:
            logger.debug(f"已释放 {count} 个预览句柄")
        return count

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """上下文管理器退出时释放所有句柄"""
        del exc_type, exc_val, exc_tb
        self.dispose()
