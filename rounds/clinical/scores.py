"""ESAS (0-10) and CTCAE (0-4) score records, one row per patient."""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

ESAS_FIELDS = (
    "Pain",
    "Tiredness",
    "Drowsiness",
    "Nausea",
    "Lack of Appetite",
    "Shortness of Breath",
    "Depression",
    "Anxiety",
    "Wellbeing",
)
ESAS_MAX = 10

CTCAE_FIELDS = (
    "Fatigue",
    "Sleep",
    "Nausea",
    "Vomiting",
    "Constipation",
    "Diarrhea",
    "Dyspnea",
    "Odynophagia",
    "Dysphagia",
    "Confusion/Delirium",
    "Peripheral Neuropathy",
    "Mucositis",
)
CTCAE_MAX = 4


def note_key(item: str) -> str:
    return f"{item} Note"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_score(value: Any, max_score: int) -> Optional[int]:
    """Round and clamp to 0..max_score; blank or non-numeric gives None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(n):
        return None
    if math.isinf(n):
        return max_score if n > 0 else 0
    return min(max_score, max(0, math.floor(n + 0.5)))


def is_enabled(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return bool(value)


def empty_esas_record(code: str) -> Dict[str, str]:
    record = {"Patient Code": code}
    for item in ESAS_FIELDS:
        record[item] = ""
        record[note_key(item)] = ""
    record["Updated At"] = ""
    return record


def empty_ctcae_record(code: str) -> Dict[str, str]:
    record = {"Patient Code": code, "Enabled": "FALSE"}
    for item in CTCAE_FIELDS:
        record[item] = ""
        record[note_key(item)] = ""
    record["Other"] = ""
    record["Updated At"] = ""
    return record


def set_score(record: Dict[str, str], item: str, score: Any, max_score: int) -> Dict[str, str]:
    """Store a score; removing it also clears the note."""
    s = normalize_score(score, max_score)
    record[item] = "" if s is None else str(s)
    if s is None:
        record[note_key(item)] = ""
    record["Updated At"] = now_iso()
    return record


def set_note(record: Dict[str, str], item: str, text: Optional[str]) -> Dict[str, str]:
    record[note_key(item)] = text or ""
    record["Updated At"] = now_iso()
    return record


def scored_items(record: Optional[Dict[str, Any]], fields) -> list:
    """(item, score, note) for every item with a score, in field order."""
    out = []
    if not record:
        return out
    for item in fields:
        v = record.get(item)
        if v is None or v == "":
            continue
        out.append((item, str(v), record.get(note_key(item)) or ""))
    return out
