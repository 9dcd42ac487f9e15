import asyncio
import codecs
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from contentguard.analysis.base import AnalysisSession
from contentguard.analysis.models import AnalysisConfig, ProcessingStats
from contentguard.streaming.exceptions import InvalidTransitionError


class OperationState(str, Enum):
    PROCESSING = "processing"
    PAUSED = "paused"
    FINALIZED = "finalized"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.FINALIZED, OperationState.FAILED)


_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.PROCESSING: frozenset(
        {OperationState.PAUSED, OperationState.FINALIZED, OperationState.FAILED}
    ),
    OperationState.PAUSED: frozenset({OperationState.PROCESSING}),
    OperationState.FINALIZED: frozenset(),
    OperationState.FAILED: frozenset(),
}


def _utf8_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


@dataclass(frozen=True)
class FileMeta:
    """Declared file metadata, fixed at init."""

    name: str
    size: int
    type: str = ""


@dataclass(frozen=True)
class Backpressure:
    pause: bool
    resume_after_ms: int | None
    queue_size: int
    max_queue_size: int
    processing_rate: int


@dataclass(frozen=True)
class ChunkProgress:
    current_chunk: int
    total_chunks: int
    percentage: float
    stats: ProcessingStats
    estimated_time_ms: int | None = None


@dataclass(frozen=True)
class ChunkOutcome:
    """Everything the caller learns from one accepted chunk."""

    progress: ChunkProgress
    backpressure: Backpressure
    operation_state: OperationState
    sequence: int

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["operation_state"] = self.operation_state.value
        return payload


@dataclass
class StreamingOperation:
    """One in-flight file analysis.

    The analysis session owns the accumulated content. ``stats.total_chunks``
    doubles as the sequence token the next chunk must carry.
    """

    id: str
    file_meta: FileMeta
    config: AnalysisConfig
    session: AnalysisSession
    engine: str
    start_time: float
    last_activity: float
    state: OperationState = OperationState.PROCESSING
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    fallback_used: bool = False
    decoder: codecs.IncrementalDecoder = field(
        default_factory=_utf8_decoder, repr=False, compare=False
    )
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def sequence(self) -> int:
        return self.stats.total_chunks

    @property
    def content(self) -> str:
        return self.session.content

    def transition(self, target: OperationState) -> None:
        if target is self.state:
            return
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Operation {self.id} cannot move from {self.state.value} to {target.value}"
            )
        self.state = target

    def summary(self) -> dict[str, Any]:
        return {
            "operation_id": self.id,
            "state": self.state.value,
            "total_chunks": self.stats.total_chunks,
            "sequence": self.sequence,
            "engine": self.engine,
            "config": asdict(self.config),
        }
