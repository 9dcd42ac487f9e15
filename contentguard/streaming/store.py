from collections.abc import Iterator

from contentguard.streaming.exceptions import OperationExistsError, OperationNotFoundError
from contentguard.streaming.models import StreamingOperation


class OperationStore:
    """Live operations keyed by caller-supplied id, owned by one manager."""

    def __init__(self) -> None:
        self._operations: dict[str, StreamingOperation] = {}

    def add(self, operation: StreamingOperation) -> None:
        if operation.id in self._operations:
            raise OperationExistsError(f"Streaming operation already exists: {operation.id}")
        self._operations[operation.id] = operation

    def get(self, operation_id: str) -> StreamingOperation:
        """Return a live operation.

        Raises:
            OperationNotFoundError: if the id is unknown or the operation is terminal.
        """
        operation = self._operations.get(operation_id)
        if operation is None or operation.state.is_terminal:
            raise OperationNotFoundError(operation_id)
        return operation

    def remove(self, operation_id: str) -> StreamingOperation | None:
        return self._operations.pop(operation_id, None)

    def values(self) -> list[StreamingOperation]:
        return list(self._operations.values())

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._operations))
