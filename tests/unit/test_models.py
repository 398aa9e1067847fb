"""Tests for policies, reader options, table locations and settings."""
import pytest
import structlog
from pydantic import ValidationError

from tablereader.config import Settings, configure_logging
from tablereader.errors.exceptions import ConfigurationError
from tablereader.models import (
    BlankRowAction,
    FieldSpec,
    Policy,
    ReaderConfig,
    UnknownColumnsAction,
    ValidationFailAction,
    build_field_map,
)


class TestPolicy:
    """Tests for fixed and custom anomaly policies."""

    def test_fixed_tag(self):
        policy = Policy.build("on_blank_row", BlankRowAction, "last")
        assert not policy.is_custom
        assert policy.resolve("row 3", "row 4") is BlankRowAction.LAST

    def test_enum_member_accepted(self):
        policy = Policy.build("on_validation_fail", ValidationFailAction, ValidationFailAction.USE)
        assert policy.resolve() is ValidationFailAction.USE

    def test_invalid_tag_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Policy.build("on_blank_row", BlankRowAction, "skip")
        assert "Invalid action 'skip' for 'on_blank_row'" in exc_info.value.message

    def test_custom_function_receives_context(self):
        seen = []

        def decide(header, unclaimed):
            seen.append((header, unclaimed))
            return "next"

        policy = Policy.build("on_unknown_columns", UnknownColumnsAction, decide)
        assert policy.is_custom
        assert policy.resolve(["a", "b"], [1]) is UnknownColumnsAction.NEXT
        assert seen == [(["a", "b"], [1])]

    def test_custom_function_returning_bad_tag_raises(self):
        policy = Policy.custom("on_blank_row", BlankRowAction, lambda first, last: "maybe")
        with pytest.raises(ConfigurationError):
            policy.resolve("row 1", "row 2")

    def test_policy_for_other_option_rejected(self):
        policy = Policy.fixed("on_blank_row", BlankRowAction, "next")
        with pytest.raises(ConfigurationError):
            Policy.build("on_validation_fail", ValidationFailAction, policy)


class TestReaderConfig:
    """Tests for TableReader option validation."""

    def test_defaults(self):
        config = ReaderConfig(fields=["a"])
        assert config.record_class == "dict"
        assert config.filters == []
        assert config.header_row_at == (1, 10)
        assert config.on_unknown_columns.action is UnknownColumnsAction.USE
        assert config.on_blank_row.action is BlankRowAction.NEXT
        assert config.on_validation_fail.action is ValidationFailAction.DIE

    def test_fields_coerced(self):
        config = ReaderConfig(fields=["a", {"name": "b", "required": False}, FieldSpec.coerce("c")])
        assert [f.name for f in config.fields] == ["a", "b", "c"]
        assert all(isinstance(f, FieldSpec) for f in config.fields)

    def test_empty_fields_rejected(self):
        with pytest.raises(ValidationError):
            ReaderConfig(fields=[])

    def test_single_header_row(self):
        assert ReaderConfig(fields=["a"], header_row_at=3).header_row_at == (3, 3)

    @pytest.mark.parametrize("window", [(0, 5), (5, 2), 5.5, (1, 2, 3), ("a", "b")])
    def test_bad_header_window(self, window):
        with pytest.raises(ValidationError):
            ReaderConfig(fields=["a"], header_row_at=window)

    def test_no_header_requires_static_order(self):
        with pytest.raises(ValidationError) as exc_info:
            ReaderConfig(fields=["a"], header_row_at=None)
        assert "static_field_order" in str(exc_info.value)
        config = ReaderConfig(fields=["a"], header_row_at=None, static_field_order=True)
        assert config.header_row_at is None

    @pytest.mark.parametrize("value,expected", [
        ("dict", "dict"),
        ("HASH", "dict"),
        ("list", "list"),
        ("array", "list"),
    ])
    def test_record_class_shapes(self, value: str, expected: str):
        assert ReaderConfig(fields=["a"], record_class=value).record_class == expected

    def test_record_class_rejects_unknown_shape(self):
        with pytest.raises(ValidationError):
            ReaderConfig(fields=["a"], record_class="set")

    def test_single_filter_wrapped(self):
        fn = lambda rec: rec  # noqa: E731
        assert ReaderConfig(fields=["a"], filters=fn).filters == [fn]

    def test_invalid_policy_tag(self):
        with pytest.raises(ConfigurationError):
            ReaderConfig(fields=["a"], on_validation_fail="ignore")

    def test_field_by_name_returns_first_declared(self):
        config = ReaderConfig(fields=[{"name": "a", "header": "first"}, {"name": "a", "header": "second"}])
        assert config.field_by_name("a").header == "first"
        with pytest.raises(ConfigurationError):
            config.field_by_name("missing")


class TestFieldMap:
    """Tests for deriving the field map from a column mapping."""

    def test_array_fields_map_to_ordered_indices(self):
        name = FieldSpec.coerce("name")
        tag = FieldSpec.coerce({"name": "tag", "array": True})
        fmap = build_field_map((tag, name, None, tag))
        assert fmap == {"tag": (0, 3), "name": 1}

    def test_field_map_is_read_only(self):
        fmap = build_field_map((FieldSpec.coerce("a"),))
        with pytest.raises(TypeError):
            fmap["b"] = 2


class TestSettings:
    """Tests for environment-driven defaults."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TABLEREADER_HEADER_ROW_END", "25")
        monkeypatch.setenv("TABLEREADER_ON_BLANK_ROW", "last")
        settings = Settings()
        assert settings.header_row_end == 25
        assert settings.on_blank_row == "last"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TABLEREADER_HEADER_ROW_END", raising=False)
        settings = Settings(_env_file=None)
        assert settings.header_row_start == 1
        assert settings.probe_bytes == 4096
        assert settings.csv_encoding == "utf-8-sig"

    def test_invalid_policy_rejected(self, monkeypatch):
        monkeypatch.setenv("TABLEREADER_ON_VALIDATION_FAIL", "ignore")
        with pytest.raises(ValidationError):
            Settings()


class TestConfigureLogging:
    """Tests for the structlog setup helper."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_configures_structlog(self):
        configure_logging("warning")
        assert structlog.is_configured()
