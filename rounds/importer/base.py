from typing import List, Sequence

DELIMITERS = (",", "\t", ";")


def _first_line(text: str) -> str:
    line = text.split("\n", 1)[0]
    return line.rstrip("\r")


def detect_delimiter(text: str) -> str:
    """Return ',', '\\t' or ';' based on the header line only."""
    line = _first_line(text or "")
    counts = {d: line.count(d) for d in DELIMITERS}
    best = max(counts.values())
    if best == 0:
        return ","
    winners = [d for d, n in counts.items() if n == best]
    if len(winners) > 1:
        return ","
    return winners[0]


def parse_delimited(text: str, delimiter: str = ",") -> List[List[str]]:
    """Single pass, quote-aware scanner.

    - "" inside a quoted field is a literal quote
    - \\r outside quotes is dropped, so \\n and \\r\\n both end a row
    - rows may come out ragged; callers normalise them
    """
    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quotes = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    field.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(ch)
            i += 1
            continue

        if ch == '"':
            in_quotes = True
        elif ch == delimiter:
            row.append("".join(field))
            field = []
        elif ch == "\n":
            row.append("".join(field))
            field = []
            rows.append(row)
            row = []
        elif ch != "\r":
            field.append(ch)
        i += 1

    # last field / row without a trailing newline
    row.append("".join(field))
    if len(row) > 1 or row[0] != "":
        rows.append(row)
    return rows


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not (cell or "").strip() for cell in row)


def normalize_row(row: Sequence[str], width: int) -> List[str]:
    """Pad with '' or truncate so the row has exactly `width` cells."""
    out = [("" if cell is None else str(cell)) for cell in list(row)[:width]]
    out.extend([""] * (width - len(out)))
    return out
