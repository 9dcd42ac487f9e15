import pytest

from contentguard.analysis.models import AnalysisConfig
from contentguard.service.exceptions import MessageValidationError
from contentguard.service.validator import (
    build_config,
    parse_analyze,
    parse_chunk,
    parse_finalize,
    parse_init,
)

BASE = AnalysisConfig()


def _init_message(**overrides) -> dict:
    message = {
        "type": "STREAM_INIT",
        "operation_id": "op1",
        "file": {"name": "a.txt", "size": 100, "type": "text/plain"},
    }
    message.update(overrides)
    return message


class TestParseInit:
    def test_valid(self) -> None:
        request = parse_init(_init_message(), BASE)
        assert request.operation_id == "op1"
        assert request.file_meta.size == 100
        assert request.file_meta.type == "text/plain"
        assert request.config is BASE

    def test_missing_operation_id(self) -> None:
        with pytest.raises(MessageValidationError, match="operation_id"):
            parse_init(_init_message(operation_id=""), BASE)

    @pytest.mark.parametrize("size", [-1, "10", True, None])
    def test_invalid_size(self, size) -> None:
        with pytest.raises(MessageValidationError, match="file.size"):
            parse_init(_init_message(file={"name": "a.txt", "size": size}), BASE)

    def test_file_must_be_object(self) -> None:
        with pytest.raises(MessageValidationError, match="'file'"):
            parse_init(_init_message(file="a.txt"), BASE)

    def test_type_defaults_to_empty(self) -> None:
        request = parse_init(_init_message(file={"name": "a.txt", "size": 1}), BASE)
        assert request.file_meta.type == ""


class TestBuildConfig:
    def test_none_returns_base(self) -> None:
        assert build_config(None, BASE) is BASE

    def test_overrides(self) -> None:
        config = build_config(
            {"entropy_threshold": 4, "risk_threshold": 0.7, "banned_phrases": ["x"]}, BASE
        )
        assert config.entropy_threshold == 4.0
        assert config.risk_threshold == 0.7
        assert config.banned_phrases == ("x",)
        assert config.stopwords == BASE.stopwords

    def test_unknown_keys_are_ignored(self) -> None:
        assert build_config({"theme": "dark"}, BASE) == BASE

    def test_preset_then_overrides(self) -> None:
        config = build_config({"preset": "high_security", "risk_threshold": 0.55}, BASE)
        assert config.entropy_threshold == 3.5
        assert config.risk_threshold == 0.55
        assert "trade secret" in config.banned_phrases

    def test_low_security_preset(self) -> None:
        config = build_config({"preset": "low_security"}, BASE)
        assert config.banned_phrases == ("confidential", "secret")
        assert config.risk_threshold == 0.9

    @pytest.mark.parametrize(
        "raw",
        [
            {"preset": "paranoid"},
            {"entropy_threshold": 0},
            {"entropy_threshold": "high"},
            {"risk_threshold": 1.5},
            {"max_words": -1},
            {"banned_phrases": "secret"},
            {"stopwords": [1, 2]},
            {"pii_detectors": ["passport"]},
            "not-an-object",
        ],
    )
    def test_invalid_values(self, raw) -> None:
        with pytest.raises(MessageValidationError):
            build_config(raw, BASE)

    def test_pii_detectors(self) -> None:
        config = build_config({"pii_detectors": ["digit_run", "email"]}, BASE)
        assert config.pii_detectors == ("digit_run", "email")


class TestParseChunk:
    def test_string_chunk(self) -> None:
        request = parse_chunk({"operation_id": "op1", "chunk": "text", "sequence": 3})
        assert request.chunk == "text"
        assert request.sequence == 3

    def test_wrapped_chunk(self) -> None:
        request = parse_chunk({"operation_id": "op1", "chunk": {"data": b"raw"}})
        assert request.chunk == b"raw"
        assert request.sequence is None

    @pytest.mark.parametrize("chunk", [None, 5, ["a"], {"data": 1}])
    def test_invalid_chunk(self, chunk) -> None:
        with pytest.raises(MessageValidationError, match="chunk"):
            parse_chunk({"operation_id": "op1", "chunk": chunk})

    @pytest.mark.parametrize("sequence", [-1, "1", False])
    def test_invalid_sequence(self, sequence) -> None:
        with pytest.raises(MessageValidationError, match="sequence"):
            parse_chunk({"operation_id": "op1", "chunk": "x", "sequence": sequence})


class TestParseFinalize:
    def test_force_defaults_to_false(self) -> None:
        assert parse_finalize({"operation_id": "op1"}).force is False

    def test_force_must_be_bool(self) -> None:
        with pytest.raises(MessageValidationError, match="force"):
            parse_finalize({"operation_id": "op1", "force": "yes"})


class TestParseAnalyze:
    def test_top_level_fields(self) -> None:
        request = parse_analyze({"content": "hello", "fileName": "a.txt"})
        assert request.content == "hello"
        assert request.file_name == "a.txt"

    def test_fields_under_data(self) -> None:
        request = parse_analyze({"data": {"content": "hello", "fileName": "b.txt"}})
        assert request.file_name == "b.txt"

    def test_file_name_defaults(self) -> None:
        assert parse_analyze({"content": ""}).file_name == "unknown"

    def test_content_required(self) -> None:
        with pytest.raises(MessageValidationError, match="content"):
            parse_analyze({"fileName": "a.txt"})
