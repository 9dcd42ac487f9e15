from dataclasses import dataclass
from enum import Enum

from contentguard.analysis.models import AnalysisConfig
from contentguard.streaming.models import FileMeta


class MessageType(str, Enum):
    STREAM_INIT = "STREAM_INIT"
    STREAM_CHUNK = "STREAM_CHUNK"
    STREAM_FINALIZE = "STREAM_FINALIZE"
    ANALYZE_FILE = "ANALYZE_FILE"
    GET_STATUS = "GET_STATUS"
    GET_ERROR_LOG = "GET_ERROR_LOG"
    CLEAR_ERROR_LOG = "CLEAR_ERROR_LOG"


@dataclass(frozen=True)
class InitRequest:
    operation_id: str
    file_meta: FileMeta
    config: AnalysisConfig


@dataclass(frozen=True)
class ChunkRequest:
    operation_id: str
    chunk: str | bytes
    sequence: int | None = None


@dataclass(frozen=True)
class FinalizeRequest:
    operation_id: str
    force: bool = False


@dataclass(frozen=True)
class AnalyzeRequest:
    content: str
    file_name: str
