"""Validates inbound message dicts and builds typed requests."""

from typing import Any

from contentguard.analysis.detectors import PII_DETECTORS
from contentguard.analysis.models import AnalysisConfig
from contentguard.service.exceptions import MessageValidationError
from contentguard.service.messages import (
    AnalyzeRequest,
    ChunkRequest,
    FinalizeRequest,
    InitRequest,
)
from contentguard.streaming.models import FileMeta

_PHRASE_LIST_FIELDS = ("banned_phrases", "stopwords")


def parse_init(message: dict[str, Any], base_config: AnalysisConfig) -> InitRequest:
    """Build an InitRequest from a STREAM_INIT message.

    Raises:
        MessageValidationError: on any validation failure.
    """
    operation_id = _operation_id(message)
    file_meta = _build_file_meta(message.get("file"))
    config = build_config(message.get("config"), base_config)
    return InitRequest(operation_id=operation_id, file_meta=file_meta, config=config)


def parse_chunk(message: dict[str, Any]) -> ChunkRequest:
    operation_id = _operation_id(message)
    chunk = message.get("chunk")
    if isinstance(chunk, dict):
        chunk = chunk.get("data")
    if not isinstance(chunk, (str, bytes)):
        raise MessageValidationError("'chunk' must be a string or bytes")
    sequence = message.get("sequence")
    if sequence is not None and (
        not isinstance(sequence, int) or isinstance(sequence, bool) or sequence < 0
    ):
        raise MessageValidationError("'sequence' must be a non-negative integer")
    return ChunkRequest(operation_id=operation_id, chunk=chunk, sequence=sequence)


def parse_finalize(message: dict[str, Any]) -> FinalizeRequest:
    operation_id = _operation_id(message)
    force = message.get("force", False)
    if not isinstance(force, bool):
        raise MessageValidationError("'force' must be a boolean")
    return FinalizeRequest(operation_id=operation_id, force=force)


def parse_analyze(message: dict[str, Any]) -> AnalyzeRequest:
    """ANALYZE_FILE fields may sit at the top level or under ``data``."""
    data = message.get("data")
    source = data if isinstance(data, dict) else message
    content = source.get("content")
    if not isinstance(content, str):
        raise MessageValidationError("'content' must be a string")
    file_name = source.get("fileName", source.get("file_name", "unknown"))
    if not isinstance(file_name, str):
        raise MessageValidationError("'fileName' must be a string")
    return AnalyzeRequest(content=content, file_name=file_name)


def build_config(raw: Any, base: AnalysisConfig) -> AnalysisConfig:
    """Apply a caller's config object on top of ``base``.

    A ``preset`` is applied first, then individual fields. Unknown keys are
    ignored.
    """
    if raw is None:
        return base
    if not isinstance(raw, dict):
        raise MessageValidationError("'config' must be an object")

    config = base
    preset = raw.get("preset")
    if preset is not None:
        if preset not in AnalysisConfig.PRESETS:
            raise MessageValidationError(
                f"'config.preset' must be one of {list(AnalysisConfig.PRESETS)}, got {preset!r}"
            )
        config = config.preset(preset)

    overrides: dict[str, Any] = {}
    if "entropy_threshold" in raw:
        value = _number(raw["entropy_threshold"], "entropy_threshold")
        if value <= 0:
            raise MessageValidationError("'config.entropy_threshold' must be positive")
        overrides["entropy_threshold"] = float(value)
    if "risk_threshold" in raw:
        value = _number(raw["risk_threshold"], "risk_threshold")
        if not 0 <= value <= 1:
            raise MessageValidationError("'config.risk_threshold' must be between 0 and 1")
        overrides["risk_threshold"] = float(value)
    if "max_words" in raw:
        value = raw["max_words"]
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise MessageValidationError("'config.max_words' must be a non-negative integer")
        overrides["max_words"] = value
    for field in _PHRASE_LIST_FIELDS:
        if field in raw:
            overrides[field] = _string_list(raw[field], field)
    if "pii_detectors" in raw:
        names = _string_list(raw["pii_detectors"], "pii_detectors")
        unknown = [name for name in names if name not in PII_DETECTORS]
        if unknown:
            raise MessageValidationError(
                f"'config.pii_detectors' has unknown detectors {unknown}; "
                f"choose from {sorted(PII_DETECTORS)}"
            )
        overrides["pii_detectors"] = names
    return config.with_overrides(overrides) if overrides else config


def _operation_id(message: dict[str, Any]) -> str:
    operation_id = message.get("operation_id")
    if not operation_id or not isinstance(operation_id, str):
        raise MessageValidationError("'operation_id' must be a non-empty string")
    return operation_id


def _build_file_meta(raw: Any) -> FileMeta:
    if not isinstance(raw, dict):
        raise MessageValidationError("'file' must be an object")
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise MessageValidationError("'file.name' must be a non-empty string")
    size = raw.get("size")
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise MessageValidationError("'file.size' must be a non-negative integer")
    file_type = raw.get("type", "")
    if not isinstance(file_type, str):
        raise MessageValidationError("'file.type' must be a string")
    return FileMeta(name=name, size=size, type=file_type)


def _number(value: Any, field: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise MessageValidationError(f"'config.{field}' must be a number")
    return value


def _string_list(value: Any, field: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MessageValidationError(f"'config.{field}' must be a list of strings")
    return value
