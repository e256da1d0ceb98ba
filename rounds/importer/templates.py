"""Known CSV templates for the patient list and header recognition.

Two templates are accepted:

* ``current``: the 13 column export of the rounding list.
* ``legacy``: the older 9 column hospital export with "Cause Of Admission".

Header matching is exact (after trimming) for the current template. The
legacy template is also accepted with different letter case or spacing; the
current one is not.
"""
from typing import List, Optional, Sequence, Union

from .models import HeaderMatch, ImportFailure

CURRENT = "current"
LEGACY = "legacy"

CURRENT_COLUMNS = (
    "Patient Code",
    "Patient Name",
    "Patient Age",
    "Room",
    "Diagnosis",
    "Section",
    "Admitting Provider",
    "Diet",
    "Isolation",
    "Comments",
    "Symptoms (comma-separated)",
    "Symptoms Notes (JSON map)",
    "Labs Abnormal (comma-separated)",
)

LEGACY_COLUMNS = (
    "Patient Code",
    "Patient Name",
    "Patient Age",
    "Room",
    "Admitting Provider",
    "Cause Of Admission",
    "Diet",
    "Isolation",
    "Comments",
)

SCHEMAS = {CURRENT: CURRENT_COLUMNS, LEGACY: LEGACY_COLUMNS}

# legacy column -> current column
LEGACY_TO_CURRENT = {
    "Patient Code": "Patient Code",
    "Patient Name": "Patient Name",
    "Patient Age": "Patient Age",
    "Room": "Room",
    "Admitting Provider": "Admitting Provider",
    "Cause Of Admission": "Diagnosis",
    "Diet": "Diet",
    "Isolation": "Isolation",
    "Comments": "Comments",
}

BOM = "\ufeff"
NBSP = "\u00a0"


def normalize_header_cell(cell: Optional[str], first: bool = False) -> str:
    s = "" if cell is None else str(cell)
    if first and s.startswith(BOM):
        s = s[len(BOM):]
    return s.replace(NBSP, " ").strip()


def _relaxed(cell: str) -> str:
    return " ".join(cell.split()).lower()


def _normalize_header(header_row: Sequence[str]) -> List[str]:
    return [normalize_header_cell(c, first=(i == 0)) for i, c in enumerate(header_row)]


def detect_template(header_row: Sequence[str]) -> Optional[str]:
    """Return CURRENT, LEGACY or None."""
    got = _normalize_header(header_row)
    if tuple(got) == CURRENT_COLUMNS:
        return CURRENT
    if len(got) == len(LEGACY_COLUMNS) and all(
        _relaxed(g) == _relaxed(e) for g, e in zip(got, LEGACY_COLUMNS)
    ):
        return LEGACY
    return None


def _header_diagnostic(got: List[str], raw: Sequence[str]) -> str:
    lines = [
        "CSV header does not match a known template.",
        f"Expected (current, {len(CURRENT_COLUMNS)} columns): " + ", ".join(CURRENT_COLUMNS),
        f"Expected (legacy, {len(LEGACY_COLUMNS)} columns): " + ", ".join(LEGACY_COLUMNS),
        f"Found ({len(got)} columns):",
    ]
    width = max(len(got), len(CURRENT_COLUMNS))
    for i in range(width):
        found = got[i] if i < len(got) else None
        cur = CURRENT_COLUMNS[i] if i < len(CURRENT_COLUMNS) else None
        leg = LEGACY_COLUMNS[i] if i < len(LEGACY_COLUMNS) else None
        ok_cur = found is not None and found == cur
        ok_leg = found is not None and leg is not None and _relaxed(found) == _relaxed(leg)
        mark = "ok" if (ok_cur or ok_leg) else "MISMATCH"
        shown = f'"{found}"' if found is not None else "(missing)"
        lines.append(
            f"  {i + 1:>2}. {shown} [{mark}] current: {cur or '-'} | legacy: {leg or '-'}"
        )
        # la celda original, si la limpieza la cambió
        if found is not None and raw[i] != found:
            lines.append(f'      as written: "{raw[i]}" {raw[i]!r}')
    return "\n".join(lines)


def validate_header(header_row: Optional[Sequence[str]]) -> Union[HeaderMatch, ImportFailure]:
    if not header_row:
        return ImportFailure(diagnostic="Missing header row.", found=[])
    mode = detect_template(header_row)
    if mode:
        return HeaderMatch(mode=mode, columns=SCHEMAS[mode])
    raw = ["" if c is None else str(c) for c in header_row]
    return ImportFailure(diagnostic=_header_diagnostic(_normalize_header(header_row), raw), found=raw)


def remap_legacy_row(row: Sequence[str]) -> List[str]:
    """Map a normalised legacy row onto the current column order.

    Columns the legacy export does not have (Section, Symptoms, Symptoms
    Notes, Labs Abnormal) come back empty; the caller fills Section.
    """
    by_name = {col: (row[i] if i < len(row) else "") for i, col in enumerate(LEGACY_COLUMNS)}
    target = {LEGACY_TO_CURRENT[col]: val for col, val in by_name.items()}
    return [target.get(col, "") for col in CURRENT_COLUMNS]


def template_csv(mode: str = CURRENT, delimiter: str = ",") -> str:
    """Header line of a blank import template."""
    cols = SCHEMAS[mode]
    out = []
    for c in cols:
        if delimiter in c or '"' in c:
            c = '"' + c.replace('"', '""') + '"'
        out.append(c)
    return delimiter.join(out) + "\r\n"
