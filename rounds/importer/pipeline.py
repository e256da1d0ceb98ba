from typing import List, Tuple, Union

from rounds.commons.logger import logger

from .base import detect_delimiter, is_blank_row, normalize_row, parse_delimited
from .models import ImportFailure, ImportRow, ImportStatus, ImportSuccess
from .templates import CURRENT_COLUMNS, LEGACY, remap_legacy_row, validate_header

ImportResult = Union[ImportSuccess, ImportFailure]


def import_rows(text: str) -> ImportResult:
    """Parse CSV/TSV text into current-template rows.

    Returns ImportFailure only when the header matches neither template.
    Blank rows are skipped; an empty file or a header-only file is a
    success with no rows and a status the caller can warn on.
    """
    text = text or ""
    delimiter = detect_delimiter(text)
    table = parse_delimited(text, delimiter)
    if not table:
        return ImportSuccess(mode=None, rows=[], status=ImportStatus.EMPTY_FILE)

    check = validate_header(table[0])
    if isinstance(check, ImportFailure):
        logger.warning(f"CSV rechazado: cabecera no reconocida ({len(table[0])} columnas)")
        return check

    rows: List[ImportRow] = []
    skipped = 0
    for raw in table[1:]:
        if is_blank_row(raw):
            skipped += 1
            continue
        cells = normalize_row(raw, len(check.columns))
        if check.mode == LEGACY:
            cells = remap_legacy_row(cells)
        rows.append(ImportRow.from_cells(CURRENT_COLUMNS, cells))

    status = ImportStatus.OK if rows else ImportStatus.NO_DATA_ROWS
    logger.info(
        f"CSV {check.mode}: {len(rows)} fila(s) válidas, {skipped} vacía(s) omitidas "
        f"(delimitador {delimiter!r})"
    )
    return ImportSuccess(mode=check.mode, rows=rows, status=status, skipped_blank=skipped)


def preview(result: ImportSuccess, limit: int = 10) -> Tuple[List[List[str]], str]:
    """Header plus the first `limit` rows, and a one-line note."""
    table = [list(CURRENT_COLUMNS)]
    table.extend([list(r.columns().values()) for r in result.rows[:limit]])
    total = len(result.rows)
    if total > limit:
        note = f"Showing first {limit} rows of {total} data rows."
    elif total == 0:
        note = "No data rows detected."
    else:
        note = f"{total} data rows detected."
    return table, note
