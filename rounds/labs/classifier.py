"""Lab value classification against the reference ranges.

Nothing here raises: text that cannot be read as a number, or a name outside
the catalog, classifies as normal. The result is a display hint, not a
validity check, so data entry is never blocked.
"""
import math
import re
from typing import Any, Mapping, Optional

from .models import HIGH, LOW, NORMAL, Abnormality, AbnormalitySummary, LabClassification
from .reference_ranges import LAB_FIELDS, REFERENCE_RANGES, short_name

# first number wins: "< 4" -> 4, "4-8" -> 4
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?", re.ASCII)


def parse_numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    s = str(value).strip()
    if not s:
        return None
    m = _NUMBER.search(s)
    if not m:
        return None
    return float(m.group(0))


def classify(name: Any, raw: Any) -> LabClassification:
    ref = REFERENCE_RANGES.get(name) if isinstance(name, str) else None
    if ref is None:
        return LabClassification()
    n = parse_numeric(raw)
    if n is None:
        return LabClassification(ref=ref)
    low, high = ref
    if n < low:
        return LabClassification(LOW, n, ref)
    if n > high:
        return LabClassification(HIGH, n, ref)
    return LabClassification(NORMAL, n, ref)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def summarize_abnormalities(record: Optional[Mapping[str, Any]]) -> AbnormalitySummary:
    summary = AbnormalitySummary()
    if not isinstance(record, Mapping):
        return summary
    for name in REFERENCE_RANGES:
        if name not in record:
            continue
        c = classify(name, record.get(name))
        if c.abnormal:
            summary.findings.append(
                Abnormality(
                    name=name,
                    short_name=short_name(name),
                    value_text=_text(record.get(name)),
                    direction=c.status,
                )
            )
    other = _text(record.get("Other"))
    if other:
        summary.other = other
    return summary


def labs_abnormal_text(summary: AbnormalitySummary) -> str:
    """Value for the patient's 'Labs Abnormal' column."""
    return ", ".join(summary.chips())


def empty_lab_record(code: str) -> dict:
    record = {f: "" for f in LAB_FIELDS}
    record["Patient Code"] = code
    return record
