"""Unified symptom list (ESAS + CTCAE labels merged).

Stored on the patient row as two cells:
  - "Symptoms": comma-separated canonical names
  - "Symptoms Notes": JSON object {symptom: note}
"""
import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

# label (ESAS or CTCAE) -> canonical key
CANON = {
    "Pain": "Pain",
    "Tiredness": "Fatigue",
    "Fatigue": "Fatigue",
    "Drowsiness": "Drowsiness",
    "Nausea": "Nausea",
    "Vomiting": "Vomiting",
    "Lack of Appetite": "Lack of Appetite",
    "Shortness of Breath": "Shortness of Breath",
    "Dyspnea": "Shortness of Breath",
    "Depression": "Depression",
    "Anxiety": "Anxiety",
    "Sleep": "Sleep Disturbance",
    "Sleep Disturbance": "Sleep Disturbance",
    "Dysphagia": "Dysphagia",
    "Odynophagia": "Odynophagia",
    "Constipation": "Constipation",
    "Diarrhea": "Diarrhea",
    "Confusion/Delirium": "Confusion/Delirium",
    "Peripheral Neuropathy": "Peripheral Neuropathy",
    "Mucositis": "Mucositis",
    "Wellbeing": "Wellbeing",
    "Other": "Other",
}

DISPLAY = {
    "Fatigue": "Fatigue (Tiredness)",
    "Shortness of Breath": "Shortness of Breath (Dyspnea)",
}

UNIFIED_SYMPTOMS = (
    "Pain",
    "Fatigue",
    "Drowsiness",
    "Nausea",
    "Vomiting",
    "Lack of Appetite",
    "Shortness of Breath",
    "Depression",
    "Anxiety",
    "Sleep Disturbance",
    "Dysphagia",
    "Odynophagia",
    "Constipation",
    "Diarrhea",
    "Confusion/Delirium",
    "Peripheral Neuropathy",
    "Mucositis",
    "Wellbeing",
    "Other",
)


def canonical(label: Any) -> Optional[str]:
    k = ("" if label is None else str(label)).strip()
    if not k:
        return None
    canon = CANON.get(k, k)
    return canon if canon in UNIFIED_SYMPTOMS else None


def display_label(key: str) -> str:
    return DISPLAY.get(key, key)


def normalize_selected(labels: Optional[Iterable[Any]]) -> List[str]:
    """Canonical keys, de-duplicated, in unified-list order."""
    chosen = {c for c in (canonical(s) for s in (labels or [])) if c}
    return [s for s in UNIFIED_SYMPTOMS if s in chosen]


def normalize_notes(notes: Optional[Mapping[Any, Any]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not isinstance(notes, Mapping):
        return out
    for k, v in notes.items():
        canon = canonical(k)
        if not canon:
            continue
        val = "" if v is None else str(v)
        if val.strip():
            out[canon] = val
    return out


def parse_symptoms_cell(cell: Optional[str]) -> List[str]:
    return normalize_selected((cell or "").split(","))


def format_symptoms_cell(selected: Iterable[Any]) -> str:
    return ", ".join(normalize_selected(selected))


def parse_notes_cell(cell: Optional[str]) -> Dict[str, str]:
    """Malformed JSON degrades to an empty map."""
    s = (cell or "").strip()
    if not s:
        return {}
    try:
        data = json.loads(s)
    except ValueError:
        return {}
    return normalize_notes(data)


def format_notes_cell(notes: Optional[Mapping[Any, Any]]) -> str:
    clean = normalize_notes(notes)
    return json.dumps(clean, ensure_ascii=False) if clean else ""


def toggle(selected: List[str], notes: Dict[str, str], label: str, on: bool):
    """Select/deselect one symptom; deselecting drops its note."""
    key = canonical(label)
    if not key:
        return selected, notes
    chosen = set(selected)
    if on:
        chosen.add(key)
    else:
        chosen.discard(key)
        notes = {k: v for k, v in notes.items() if k != key}
    return [s for s in UNIFIED_SYMPTOMS if s in chosen], notes
