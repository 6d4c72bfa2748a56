"""流水线事件模型。

宿主（界面、MCP 工具等）订阅这些事件来渲染状态。
"""

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """事件类型"""

    FILES_ADDED = "filesAdded"
    FILES_REJECTED = "filesRejected"
    COMPRESSION_STARTED = "compressionStarted"
    COMPRESSION_PROGRESS = "compressionProgress"
    COMPRESSION_COMPLETE = "compressionComplete"
    COMPRESSION_ERROR = "compressionError"  # 单条目软失败
    ARCHIVE_READY = "archiveReady"
    ARCHIVE_ERROR = "archiveError"


class PipelineEvent(BaseModel):
    """离散事件，按类型只填充相关字段"""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    count: int | None = None
    done: int | None = None
    total: int | None = None
    entry_id: str | None = None
    data: bytes | None = Field(None, repr=False)
    filename: str | None = None
    error: str | None = None


EventListener = Callable[[PipelineEvent], None]
