from contentguard.streaming.manager import StreamingOperationManager
from contentguard.streaming.models import FileMeta, OperationState, StreamingOperation
from contentguard.streaming.store import OperationStore
from contentguard.streaming.sweeper import OperationSweeper

__all__ = [
    "FileMeta",
    "OperationState",
    "OperationStore",
    "OperationSweeper",
    "StreamingOperation",
    "StreamingOperationManager",
]
