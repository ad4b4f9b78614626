"""Tests for the delimited text codec."""

from datetime import datetime

import pytest

from typedprefs.codecs.text import DEFAULT_DELIMITER, TextCodec, escape_text, unescape_text
from typedprefs.core.diagnostics import DiagnosticKind
from typedprefs.core.errors import KeyNotFoundError, SettingsError
from typedprefs.core.store import RESERVED_KEY, TypedStore
from typedprefs.models.values import FloatValue, IntValue, StringValue, Vector2Value

NOW = 1_800_000_000


@pytest.fixture
def codec() -> TextCodec:
    """Create a pipe-delimited codec with a fixed clock."""
    return TextCodec(delimiter="|", clock=lambda: NOW)


@pytest.fixture
def settings_store() -> TypedStore:
    """Create the store used across the scenario tests."""
    store = TypedStore.from_entries([("temp", StringValue("settings"))])
    store.set_float("volume", 0.75)
    store.set_bool("fullscreen", True)
    store.set_vector2("origin", (1.0, -2.5))
    return store


class TestEscaping:
    """Tests for newline escaping of text values."""

    def test_escape_newline(self) -> None:
        assert escape_text("a\nb") == "a\\nb"

    def test_literal_backslash_n_survives(self) -> None:
        """Test that text already containing a backslash-n round-trips."""
        text = "C:\\new\nfolder"
        assert unescape_text(escape_text(text)) == text

    def test_unknown_escape_kept(self) -> None:
        assert unescape_text("C:\\path") == "C:\\path"


class TestEncode:
    """Tests for TextCodec.encode."""

    def test_scenario_lines(self, codec: TextCodec, settings_store: TypedStore) -> None:
        """Test the encoded lines of a small settings store."""
        payload = codec.encode(settings_store).payload
        lines = payload.split("\n")

        assert set(lines[:-1]) == {
            "string|temp|settings",
            "float|volume|0.75",
            "bool|fullscreen|true",
            "vector2|origin|1,-2.5",
        }
        assert lines[-1] == f"int|date|{NOW}"

    def test_stamps_date_as_int(self, codec: TextCodec, settings_store: TypedStore) -> None:
        codec.encode(settings_store)
        assert settings_store.get(RESERVED_KEY) == IntValue(NOW)

    def test_previous_date_not_duplicated(self, codec: TextCodec) -> None:
        """Test that an existing date entry is replaced, not written twice."""
        store = TypedStore.from_entries([(RESERVED_KEY, IntValue(5)), ("a", IntValue(1))])
        lines = codec.encode(store).payload.split("\n")
        assert lines == ["int|a|1", f"int|date|{NOW}"]

    def test_comments(self) -> None:
        """Test the optional leading and trailing comments."""
        codec = TextCodec(
            delimiter="|", start_comment="My game", end_comment="The end", clock=lambda: NOW
        )
        store = TypedStore.empty()
        store.set_int("a", 1)

        payload = codec.encode(store).payload

        assert payload == f"# My game\nint|a|1\nint|date|{NOW}\n\n# The end"

    def test_empty_comments_omitted(self) -> None:
        codec = TextCodec(delimiter="|", start_comment="", end_comment="", clock=lambda: NOW)
        store = TypedStore.empty()
        store.set_int("a", 1)
        assert codec.encode(store).payload == f"int|a|1\nint|date|{NOW}"

    def test_newlines_escaped(self, codec: TextCodec) -> None:
        store = TypedStore.empty()
        store.set_string("motd", "hello\nworld")
        assert codec.encode(store).payload.split("\n")[0] == "string|motd|hello\\nworld"

    def test_empty_store_signals_delete(self, codec: TextCodec) -> None:
        result = codec.encode(TypedStore.empty())
        assert result.delete_target is True

    def test_delimiter_in_value_skipped(self, codec: TextCodec) -> None:
        """Test that an entry colliding with the delimiter is reported, not written."""
        store = TypedStore.empty()
        store.set_string("pipe", "a|b")
        store.set_int("ok", 1)

        result = codec.encode(store)

        assert "pipe" not in result.payload
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.UNENCODABLE_ENTRY]
        assert result.diagnostics[0].key == "pipe"

    def test_unencodable_key_skipped(self, codec: TextCodec) -> None:
        store = TypedStore.empty()
        store.set_int("\udcff", 1)
        store.set_int("ok", 2)

        result = codec.encode(store)

        assert result.payload == f"int|ok|2\nint|date|{NOW}"
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.UNENCODABLE_ENTRY]

    def test_default_delimiter(self) -> None:
        codec = TextCodec(clock=lambda: NOW)
        store = TypedStore.empty()
        store.set_int("a", 1)
        assert codec.encode(store).payload.startswith(f"int{DEFAULT_DELIMITER}a{DEFAULT_DELIMITER}1")

    @pytest.mark.parametrize("delimiter", ["", "||", "\n", "#", "\\"])
    def test_invalid_delimiter(self, delimiter: str) -> None:
        with pytest.raises(SettingsError):
            TextCodec(delimiter=delimiter)


class TestDecode:
    """Tests for TextCodec.decode."""

    def test_round_trip(self, codec: TextCodec, settings_store: TypedStore) -> None:
        settings_store.set_string("motd", "two\nlines and a \\ backslash")
        settings_store.set_int("lives", -7)
        settings_store.set_vector3("spawn", (0.1, 0.2, 0.3))
        expected = settings_store.to_dict()

        result = codec.decode(codec.encode(settings_store).payload)

        assert result.diagnostics == []
        decoded = result.store.to_dict()
        assert decoded.pop(RESERVED_KEY) == IntValue(NOW)
        assert decoded == expected

    def test_round_trip_with_comments(self, settings_store: TypedStore) -> None:
        codec = TextCodec(start_comment="top\nsecond", end_comment="bottom", clock=lambda: NOW)
        result = codec.decode(codec.encode(settings_store).payload)
        assert result.diagnostics == []
        assert result.store.count() == 5

    def test_unparsable_bool(self, codec: TextCodec) -> None:
        """Test that a bad bool line is skipped with one diagnostic."""
        result = codec.decode("bool|flag|notabool")

        assert result.store.has("flag") is False
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].kind is DiagnosticKind.UNPARSABLE_FIELD

    def test_corrupt_vector_line(self, codec: TextCodec) -> None:
        result = codec.decode("vector2|origin|1.0\nint|lives|3")
        assert result.store.has("origin") is False
        assert result.store.get_int("lives") == 3
        assert len(result.diagnostics) == 1

    def test_duplicate_keys_last_wins(self, codec: TextCodec) -> None:
        result = codec.decode("float|speed|1.5\nfloat|speed|2.5")
        assert result.store.get("speed") == FloatValue(2.5)
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.DUPLICATE_KEY]
        assert result.diagnostics[0].row == 2

    def test_comments_and_blank_lines_ignored(self, codec: TextCodec) -> None:
        """Test that comments and blank lines produce no diagnostics."""
        payload = "# header\n\n   \nint|a|1\n# footer\n"
        result = codec.decode(payload)
        assert result.store.to_dict() == {"a": IntValue(1)}
        assert result.diagnostics == []

    @pytest.mark.parametrize("line", ["int|a", "int|a|1|2", "no delimiter here"])
    def test_wrong_field_count(self, codec: TextCodec, line: str) -> None:
        result = codec.decode(line)
        assert result.store.count() == 0
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.MALFORMED_LINE]

    def test_unknown_tag(self, codec: TextCodec) -> None:
        result = codec.decode("unknown|tint|unparsable")
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.UNKNOWN_TYPE]

    def test_escaped_newline_restored(self, codec: TextCodec) -> None:
        result = codec.decode("string|motd|hello\\nworld")
        assert result.store.get("motd") == StringValue("hello\nworld")

    def test_vector_whitespace(self, codec: TextCodec) -> None:
        result = codec.decode("vector2|v| 1.5 , -2 ")
        assert result.store.get("v") == Vector2Value(1.5, -2.0)

    def test_date_after_2038(self, codec: TextCodec) -> None:
        """Test that the save date is not limited to 32 bits."""
        result = codec.decode("int|date|4102444800")
        assert result.store.get(RESERVED_KEY) == IntValue(4_102_444_800)


class TestReadDate:
    """Tests for reading the save date of a text payload."""

    def test_read_date(self, codec: TextCodec, settings_store: TypedStore) -> None:
        payload = codec.encode(settings_store).payload
        assert codec.read_date(payload) == datetime.fromtimestamp(NOW)

    def test_missing_date_raises(self, codec: TextCodec) -> None:
        with pytest.raises(KeyNotFoundError):
            codec.read_date("int|a|1")

    def test_non_numeric_date_raises(self, codec: TextCodec) -> None:
        with pytest.raises(KeyNotFoundError):
            codec.read_date("string|date|yesterday")

    def test_out_of_range_date_raises(self, codec: TextCodec) -> None:
        """Test that a date past the platform time range counts as missing."""
        with pytest.raises(KeyNotFoundError):
            codec.read_date("int|a|1\nint|date|99999999999999999999")
