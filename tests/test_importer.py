"""
test_importer.py

Unit tests for the CSV import pipeline.

Covers:
- Delimiter detection and the quote-aware scanner.
- Header recognition (current / legacy templates) and diagnostics.
- Row normalisation and the legacy -> current remap.
"""
import pytest

from rounds.importer.base import detect_delimiter, is_blank_row, normalize_row, parse_delimited
from rounds.importer.models import ImportFailure, ImportStatus, ImportSuccess
from rounds.importer.pipeline import import_rows, preview
from rounds.importer.templates import (
    CURRENT,
    CURRENT_COLUMNS,
    LEGACY,
    LEGACY_COLUMNS,
    remap_legacy_row,
    template_csv,
    validate_header,
)

CURRENT_HEADER = ",".join(CURRENT_COLUMNS)
LEGACY_HEADER = ",".join(LEGACY_COLUMNS)

# ----------------- Muestras CSV embebidas -----------------
CURRENT_CSV = (
    CURRENT_HEADER + "\r\n"
    'P001,"Doe, Jane",71,12B,Pancreatic ca,Ward A,Dr. Ali,Soft,None,"said ""ok""",'
    '"Pain, Nausea","{""Pain"": ""4/10 at rest""}","WBC: 15.2 ↑"\r\n'
    "\r\n"
    "P002,John Roe,64,7,COPD,Ward A,Dr. Sami,Regular,Contact,,,,\r\n"
)

LEGACY_CSV = (
    LEGACY_HEADER + "\n"
    "L1,Ana Gil,80,3,Dr. Ali,Bowel obstruction,NPO,None,family at bedside\n"
    "L2,Bo Li,55,4,Dr. Noor,Pain crisis,Soft,,\n"
)


# ----------------- Delimitador -----------------
def test_detect_delimiter_tab():
    assert detect_delimiter("a\tb\tc\n1,2,3,4,5") == "\t"


def test_detect_delimiter_comma():
    assert detect_delimiter("a,b,c") == ","


def test_detect_delimiter_semicolon():
    assert detect_delimiter("a;b;c\r\n1;2;3") == ";"


def test_detect_delimiter_defaults_to_comma():
    assert detect_delimiter("single column header") == ","
    assert detect_delimiter("") == ","


def test_detect_delimiter_tie_is_comma():
    assert detect_delimiter("a\tb;c") == ","


# ----------------- Scanner -----------------
def test_parse_quotes_and_crlf():
    rows = parse_delimited('a,"b,c","d ""e"""\r\n1,2,3', ",")
    assert rows == [["a", "b,c", 'd "e"'], ["1", "2", "3"]]


def test_parse_newline_inside_quotes():
    rows = parse_delimited('x,"line1\nline2"\ny,z\n', ",")
    assert rows == [["x", "line1\nline2"], ["y", "z"]]


def test_parse_trailing_field_without_newline():
    assert parse_delimited("a,b\nlast", ",") == [["a", "b"], ["last"]]


def test_parse_trailing_newline_adds_no_row():
    assert parse_delimited("a,b\n", ",") == [["a", "b"]]


def test_parse_empty_text():
    assert parse_delimited("", ",") == []


def test_parse_ragged_rows_never_fail():
    rows = parse_delimited("a\tb\tc\n1\n1\t2\t3\t4", "\t")
    assert [len(r) for r in rows] == [3, 1, 4]


def test_normalize_row_pads_and_truncates():
    assert normalize_row(["a"], 3) == ["a", "", ""]
    assert normalize_row(["a", "b", "c", "d"], 2) == ["a", "b"]


def test_is_blank_row():
    assert is_blank_row(["", "  ", "\t"])
    assert not is_blank_row(["", "x"])


# ----------------- Cabeceras -----------------
def test_header_current_exact():
    check = validate_header(list(CURRENT_COLUMNS))
    assert check.mode == CURRENT


def test_header_strips_bom_and_nbsp():
    header = list(CURRENT_COLUMNS)
    header[0] = "\ufeff" + header[0]
    header[3] = "Room\u00a0"
    assert validate_header(header).mode == CURRENT


def test_header_current_is_case_sensitive():
    header = [c.upper() for c in CURRENT_COLUMNS]
    assert isinstance(validate_header(header), ImportFailure)


def test_header_legacy_relaxed_case_and_spacing():
    header = [c.lower() for c in LEGACY_COLUMNS]
    header[5] = "  cause   of admission "
    assert validate_header(header).mode == LEGACY


def test_header_mismatch_diagnostic_lists_found_cells():
    header = list(CURRENT_COLUMNS)
    header[4] = "Dx"
    header[0], header[1] = header[1], header[0]
    check = validate_header(header)
    assert isinstance(check, ImportFailure)
    for cell in header:
        assert cell in check.diagnostic
    assert "Cause Of Admission" in check.diagnostic
    assert "Labs Abnormal (comma-separated)" in check.diagnostic
    assert "MISMATCH" in check.diagnostic


def test_header_diagnostic_shows_cells_as_written():
    header = list(CURRENT_COLUMNS)
    header[4] = "  Dx  "
    header[7] = "Diet\u00a0Plan"
    check = validate_header(header)
    assert isinstance(check, ImportFailure)
    assert check.found == header
    for cell in header:
        assert cell in check.diagnostic
    assert "'Diet\\xa0Plan'" in check.diagnostic


def test_result_ok_follows_type():
    assert ImportSuccess(mode=None, rows=[]).ok is True
    assert ImportFailure(diagnostic="x").ok is False
    with pytest.raises(TypeError):
        ImportSuccess(mode=None, rows=[], ok=False)


def test_remap_legacy_row():
    row = ["L1", "Ana", "80", "3", "Dr. Ali", "Bowel obstruction", "NPO", "None", "note"]
    out = dict(zip(CURRENT_COLUMNS, remap_legacy_row(row)))
    assert out["Diagnosis"] == row[5]
    assert out["Admitting Provider"] == "Dr. Ali"
    assert out["Comments"] == "note"
    for col in (
        "Section",
        "Symptoms (comma-separated)",
        "Symptoms Notes (JSON map)",
        "Labs Abnormal (comma-separated)",
    ):
        assert out[col] == ""


# ----------------- Pipeline -----------------
def test_import_current_rows_in_order():
    result = import_rows(CURRENT_CSV)
    assert isinstance(result, ImportSuccess)
    assert result.mode == CURRENT
    assert result.status == ImportStatus.OK
    assert result.skipped_blank == 1
    assert [r.patient_code for r in result.rows] == ["P001", "P002"]
    first = result.rows[0].columns()
    assert list(first) == list(CURRENT_COLUMNS)
    assert first["Patient Name"] == "Doe, Jane"
    assert first["Comments"] == 'said "ok"'
    assert first["Symptoms Notes (JSON map)"] == '{"Pain": "4/10 at rest"}'


def test_import_legacy_remaps_diagnosis():
    result = import_rows(LEGACY_CSV)
    assert result.mode == LEGACY
    assert len(result.rows) == 2
    for row in result.rows:
        cols = row.columns()
        assert len(cols) == 13
        assert cols["Section"] == ""
        assert cols["Symptoms (comma-separated)"] == ""
        assert cols["Symptoms Notes (JSON map)"] == ""
        assert cols["Labs Abnormal (comma-separated)"] == ""
    assert result.rows[0].diagnosis == "Bowel obstruction"
    assert result.rows[1].diagnosis == "Pain crisis"


def test_import_tsv_short_rows_are_padded():
    text = "\t".join(CURRENT_COLUMNS) + "\nP9\tZed\n"
    result = import_rows(text)
    assert result.mode == CURRENT
    cols = result.rows[0].columns()
    assert cols["Patient Name"] == "Zed"
    assert cols["Room"] == ""


def test_import_extra_cells_dropped():
    text = LEGACY_HEADER + "\nL1,A,1,2,Dr,Dx,Diet,Iso,Com,EXTRA,MORE\n"
    result = import_rows(text)
    assert result.rows[0].comments == "Com"
    assert "EXTRA" not in result.rows[0].columns().values()


def test_import_bad_header_is_failure():
    result = import_rows("Code,Name,Age\n1,2,3\n")
    assert isinstance(result, ImportFailure)
    assert not result.ok
    assert result.found == ["Code", "Name", "Age"]


def test_import_empty_file():
    result = import_rows("")
    assert isinstance(result, ImportSuccess)
    assert result.rows == []
    assert result.status == ImportStatus.EMPTY_FILE


def test_import_header_only():
    result = import_rows(CURRENT_HEADER + "\r\n\r\n,,,\r\n")
    assert result.ok
    assert result.rows == []
    assert result.status == ImportStatus.NO_DATA_ROWS


def test_import_is_idempotent():
    assert import_rows(CURRENT_CSV) == import_rows(CURRENT_CSV)
    assert import_rows(LEGACY_CSV).mode == LEGACY
    assert import_rows(CURRENT_CSV).mode == CURRENT


def test_preview_note():
    result = import_rows(CURRENT_CSV)
    table, note = preview(result, limit=1)
    assert table[0] == list(CURRENT_COLUMNS)
    assert len(table) == 2
    assert note == "Showing first 1 rows of 2 data rows."
    _, note = preview(import_rows(CURRENT_HEADER), limit=10)
    assert note == "No data rows detected."


def test_template_csv_round_trips_through_header_check():
    for mode in (CURRENT, LEGACY):
        header = parse_delimited(template_csv(mode), ",")[0]
        assert validate_header(header).mode == mode
