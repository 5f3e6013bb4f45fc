from __future__ import annotations

import pytest

from record_desk.records_io.csv_codec import (
    CellCountProblem,
    CsvParser,
    cell_text,
    export_csv,
    read_csv_table,
    template_csv,
)
from record_desk.validation.errors import ImportFormatError


@pytest.mark.parametrize("text", ["", "   \n\n", "Name,Category\n", "Name,Category\n  \n"])
def test_empty_or_header_only_text_is_rejected(text):
    with pytest.raises(ImportFormatError) as err:
        read_csv_table(text)
    assert err.value.messages == ["CSV file is empty or has no data rows."]


def test_standard_parser_honours_quoted_commas():
    text = 'Name,Category\n"Boxes, large",Packaging\n\n"Say ""hi""",Misc\n'

    table = read_csv_table(text)

    assert table.headers == ["Name", "Category"]
    assert table.rows == [
        {"Name": "Boxes, large", "Category": "Packaging"},
        {"Name": 'Say "hi"', "Category": "Misc"},
    ]
    assert table.problems == []


def test_standard_parser_reports_short_rows():
    table = read_csv_table("Student ID,Full Name\nS004\nS005,Dana\n")

    assert table.rows[0] == {"Student ID": "S004", "Full Name": ""}
    assert table.problems == [CellCountProblem(2, 1, 2)]
    assert table.problems[0].message == "Line 2 has 1 values, but 2 were expected."


def test_legacy_parser_splits_on_every_comma():
    text = '"Name","Category"\n"Boxes, large","Packaging"\n'

    table = read_csv_table(text, CsvParser.LEGACY)

    assert table.headers == ["Name", "Category"]
    assert table.rows[0] == {"Name": "Boxes", "Category": "large"}
    assert table.problems[0].found == 3


def test_export_quotes_every_cell_and_doubles_quotes():
    out = export_csv(
        [{"a": 'say "hi"', "b": 1.0}, {"a": None, "b": 2.5}],
        [("A", "a"), ("B", "b")],
    )
    assert out == '"A","B"\n"say ""hi""","1"\n"","2.5"\n'


def test_cell_text():
    assert cell_text(True) == "true"
    assert cell_text(["x", "y"]) == "x; y"
    assert cell_text(3) == "3"


def test_template_with_and_without_example():
    assert template_csv(["Student ID", "Full Name"]) == '"Student ID","Full Name"\n'
    assert template_csv(
        ["Student ID", "Full Name"], {"Student ID": "S004", "Full Name": "Example User"}
    ) == '"Student ID","Full Name"\n"S004","Example User"\n'


def test_exported_csv_reads_back():
    columns = [("ID", "id"), ("Name", "name")]
    records = [{"id": "1", "name": "Boxes, large"}, {"id": "2", "name": 'A "quoted" name'}]

    table = read_csv_table(export_csv(records, columns))

    assert [row["Name"] for row in table.rows] == ["Boxes, large", 'A "quoted" name']
    assert [row["ID"] for row in table.rows] == ["1", "2"]
