import asyncio
import json
from pathlib import Path

import pytest

from minddeck.exceptions import ImportFormatError, UnsupportedFileTypeError
from minddeck.importer import (
    JsonShape,
    detect_json_shape,
    import_format,
    normalize_decks,
    parse_csv_import,
    parse_csv_rows,
    parse_import,
    parse_json_import,
    read_import_file,
)


# --- File type ---


@pytest.mark.parametrize("name", ["decks.json", "DECKS.JSON", "cards.csv", "a.b.Csv"])
def test_import_format_accepts_json_and_csv(name):
    assert import_format(name) in (".json", ".csv")


@pytest.mark.parametrize("name", ["notes.txt", "deck.yaml", "noextension"])
def test_import_format_rejects_others(name):
    with pytest.raises(UnsupportedFileTypeError, match="Please select a JSON or CSV file"):
        import_format(name)


def test_read_import_file_rejects_txt_before_opening(tmp_path: Path):
    with pytest.raises(UnsupportedFileTypeError):
        asyncio.run(read_import_file(tmp_path / "missing.txt"))


def test_read_import_file_missing_file(tmp_path: Path):
    with pytest.raises(ImportFormatError, match="Error reading file"):
        asyncio.run(read_import_file(tmp_path / "missing.json"))


def test_read_import_file_strips_bom(tmp_path: Path):
    path = tmp_path / "cards.csv"
    path.write_bytes("\ufefffront,back\nq,a\n".encode("utf-8"))
    assert asyncio.run(read_import_file(path)) == "front,back\nq,a\n"


# --- CSV ---


class TestCsvRows:
    def test_quoted_field_with_comma_and_doubled_quotes(self):
        rows = parse_csv_rows('"Hello, ""world""",b\n')
        assert rows == [['Hello, "world"', "b"]]

    def test_newline_inside_quotes_belongs_to_field(self):
        assert parse_csv_rows('"line1\nline2",b') == [["line1\nline2", "b"]]

    def test_crlf_line_endings(self):
        assert parse_csv_rows("a,b\r\nc,d\r\n") == [["a", "b"], ["c", "d"]]

    def test_fields_are_trimmed_and_blank_rows_dropped(self):
        assert parse_csv_rows("  a , b  \n\n , \nc,d") == [["a", "b"], ["c", "d"]]


class TestCsvImport:
    def test_four_column_rows_with_header(self):
        text = (
            "deck_name,deck_description,front,back\n"
            '"Spanish","Basics","hola","hello"\n'
            '"French","","bonjour","hello"\n'
        )
        decks = parse_csv_import(text)
        assert len(decks) == 1
        assert decks[0]["name"] == "Imported Deck"
        assert decks[0]["cards"] == [
            {"front": "hola", "back": "hello"},
            {"front": "bonjour", "back": "hello"},
        ]

    def test_two_column_rows_without_header(self):
        decks = parse_csv_import("q1,a1\nq2,a2")
        assert [c["front"] for c in decks[0]["cards"]] == ["q1", "q2"]

    @pytest.mark.parametrize("header", ["front,back", "Question,Answer"])
    def test_two_column_header_is_skipped(self, header):
        decks = parse_csv_import(f"{header}\nq,a\n")
        assert decks[0]["cards"] == [{"front": "q", "back": "a"}]

    def test_rows_with_other_widths_are_skipped(self):
        decks = parse_csv_import("only-one\nq,a\nx,y,z\n1,2,3,4,5\n")
        assert decks[0]["cards"] == [{"front": "q", "back": "a"}]

    def test_half_empty_row_gets_untitled(self):
        decks = parse_csv_import("q,\n")
        assert decks[0]["cards"] == [{"front": "q", "back": "Untitled"}]

    def test_escaped_quotes_survive_import(self):
        decks = parse_csv_import('"Hello, ""world""",b\n')
        assert decks[0]["cards"][0]["front"] == 'Hello, "world"'

    @pytest.mark.parametrize("text", ["", "   \n  ", "\ufeff"])
    def test_empty_csv(self, text):
        with pytest.raises(ImportFormatError, match="CSV file is empty"):
            parse_csv_import(text)

    def test_header_only_csv_has_no_data(self):
        with pytest.raises(ImportFormatError, match="No valid data found in CSV file"):
            parse_csv_import("deck_name,deck_description,front,back\n")


# --- JSON ---


class TestJsonShapes:
    @pytest.mark.parametrize(
        "data, shape",
        [
            ([{"name": "A", "cards": []}], JsonShape.DECK_ARRAY),
            ([{"front": "q", "back": "a"}], JsonShape.CARD_ARRAY),
            ([], JsonShape.CARD_ARRAY),
            ({"name": "A", "cards": [{"front": "q"}]}, JsonShape.DECK),
            ({"front": "q"}, JsonShape.CARD),
        ],
    )
    def test_detect(self, data, shape):
        assert detect_json_shape(data) is shape

    @pytest.mark.parametrize(
        "data, message",
        [
            (None, "File contains invalid data"),
            ([1, 2], "expected array of decks or cards"),
            ({"title": "x"}, "expected deck or card object"),
            ("text", "expected an array or object"),
            (7, "expected an array or object"),
        ],
    )
    def test_unrecognized_shapes(self, data, message):
        with pytest.raises(ImportFormatError, match=message):
            detect_json_shape(data)


class TestJsonImport:
    def test_deck_array_is_flattened_by_default(self):
        text = json.dumps(
            [
                {"name": "A", "cards": [{"front": "1", "back": "one"}]},
                {"name": "B", "cards": [{"front": "2", "back": "two"}]},
            ]
        )
        shape, decks = parse_json_import(text)
        assert shape is JsonShape.DECK_ARRAY
        assert len(decks) == 1
        assert decks[0]["name"] == "Imported Deck"
        assert [c["front"] for c in decks[0]["cards"]] == ["1", "2"]

    def test_deck_array_keeps_grouping_when_asked(self):
        text = json.dumps([{"name": "A", "cards": []}, {"name": "B", "cards": []}])
        _, decks = parse_json_import(text, preserve_grouping=True)
        assert [d["name"] for d in decks] == ["A", "B"]

    def test_single_deck(self):
        _, decks = parse_json_import(json.dumps({"name": "A", "cards": [{"front": "q", "back": "a"}]}))
        assert decks[0]["name"] == "Imported Deck"
        assert len(decks[0]["cards"]) == 1

    def test_single_card(self):
        shape, decks = parse_json_import(json.dumps({"front": "q", "back": "a"}))
        assert shape is JsonShape.CARD
        assert decks[0]["cards"] == [{"front": "q", "back": "a"}]

    def test_bare_cards_drop_extra_keys(self):
        _, decks = parse_json_import(json.dumps([{"id": 5, "front": "q", "back": "a", "hint": "h"}]))
        assert decks[0]["cards"] == [{"front": "q", "back": "a"}]

    def test_invalid_entry_in_card_array(self):
        with pytest.raises(ImportFormatError, match="Invalid card at position 2"):
            parse_json_import(json.dumps([{"front": "q"}, "oops"]))

    def test_invalid_entry_in_deck_array(self):
        with pytest.raises(ImportFormatError, match="Invalid deck at position 2"):
            parse_json_import(json.dumps([{"cards": []}, {"cards": "nope"}]))

    def test_syntax_error_reports_position(self):
        with pytest.raises(ImportFormatError, match=r"Invalid JSON: .*\(line 1, column"):
            parse_json_import('[{"front": }]')


# --- Normalization ---


class TestNormalize:
    def test_missing_name_and_blank_name(self):
        decks = normalize_decks([{"cards": []}, {"name": "   ", "cards": []}])
        assert [d.name for d in decks] == ["Imported Deck", "Imported Deck 2"]

    def test_text_is_trimmed_and_empty_sides_untitled(self):
        [deck] = normalize_decks(
            [{"name": " A ", "description": " d ", "cards": [{"front": "  q ", "back": ""}]}]
        )
        assert deck.name == "A"
        assert deck.description == "d"
        assert deck.cards[0].front == "q"
        assert deck.cards[0].back == "Untitled"

    def test_scalar_values_are_stringified(self):
        [deck] = normalize_decks([{"name": 2024, "cards": [{"front": 1, "back": True}]}])
        assert deck.name == "2024"
        assert (deck.cards[0].front, deck.cards[0].back) == ("1", "True")

    def test_nested_values_are_rejected(self):
        with pytest.raises(ImportFormatError, match="card front"):
            normalize_decks([{"cards": [{"front": {"x": 1}, "back": "a"}]}])

    def test_ids_are_assigned_and_kept(self):
        decks = normalize_decks(
            [{"id": "keep-me", "cards": [{"id": 7, "front": "q", "back": "a"}, {"front": "r", "back": "b"}]}, {"cards": []}]
        )
        assert decks[0].id == "keep-me"
        assert decks[0].cards[0].id == 7
        assert isinstance(decks[0].cards[1].id, int)
        assert isinstance(decks[1].id, int)

    def test_colliding_ids_are_reassigned(self):
        decks = normalize_decks(
            [
                {"id": 1, "cards": [{"id": 3, "front": "q", "back": "a"}, {"id": 3, "front": "r", "back": "b"}]},
                {"id": 2, "cards": []},
            ],
            existing_ids=[1],
        )
        assert decks[0].id != 1
        assert decks[1].id == 2
        assert decks[0].cards[0].id == 3
        assert decks[0].cards[1].id != 3

    @pytest.mark.parametrize("bad_id", [None, True, "", float("nan"), [1]])
    def test_unusable_ids_are_replaced(self, bad_id):
        [deck] = normalize_decks([{"id": bad_id, "cards": []}])
        assert isinstance(deck.id, int)
        assert not isinstance(deck.id, bool)

    def test_non_object_deck(self):
        with pytest.raises(ImportFormatError, match="Invalid deck at position 1"):
            normalize_decks(["deck"])


# --- End to end ---


def test_parse_import_empty_text():
    with pytest.raises(ImportFormatError, match="File appears to be empty"):
        parse_import("decks.json", "")


def test_parse_import_json_result():
    result = parse_import(
        "decks.json",
        "\ufeff" + json.dumps([{"front": "q", "back": "a"}, {"front": "r", "back": "b"}]),
    )
    assert result.source_format == "json"
    assert result.shape is JsonShape.CARD_ARRAY
    assert result.card_count == 2


def test_parse_import_csv_result():
    result = parse_import("cards.csv", "front,back\nq,a\n")
    assert result.source_format == "csv"
    assert result.shape is None
    assert result.decks[0].cards[0].front == "q"


def test_empty_json_array_gives_empty_imported_deck():
    result = parse_import("decks.json", "[]")
    assert [d.name for d in result.decks] == ["Imported Deck"]
    assert result.card_count == 0
