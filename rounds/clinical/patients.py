import random
import string
from typing import Dict, Iterable, List, Optional

from rounds.clinical.scores import now_iso
from rounds.clinical.symptoms import (
    format_notes_cell,
    format_symptoms_cell,
    parse_notes_cell,
    parse_symptoms_cell,
)
from rounds.importer.models import ImportRow

DEFAULT_SECTION = "Default"

# Patients tab column order
PATIENT_COLUMNS = (
    "Patient Code",
    "Patient Name",
    "Patient Age",
    "Room",
    "Admitting Provider",
    "Diagnosis",
    "Diet",
    "Isolation",
    "Comments",
    "Section",
    "Done",
    "Updated At",
    "HPI Diagnosis",
    "HPI Previous",
    "HPI Current",
    "HPI Initial",
    "Patient Assessment",
    "Medication List",
    "Latest Notes",
    "Symptoms",
    "Symptoms Notes",
    "Labs Abnormal",
)

SEARCH_FIELDS = ("Patient Code", "Patient Name", "Diagnosis", "Room", "Admitting Provider")

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code() -> str:
    return "P" + "".join(random.choices(_CODE_ALPHABET, k=6))


def create_empty(section: Optional[str]) -> Dict:
    patient = {c: "" for c in PATIENT_COLUMNS}
    patient.update(
        {
            "Patient Code": generate_code(),
            "Section": section or DEFAULT_SECTION,
            "Done": False,
            "Updated At": now_iso(),
        }
    )
    return patient


def duplicate(patient: Dict) -> Dict:
    copy = dict(patient)
    copy["Patient Code"] = generate_code()
    copy["Patient Name"] = (patient.get("Patient Name") or "") + " (Copy)"
    copy["Done"] = False
    copy["Updated At"] = now_iso()
    return copy


def patient_from_import(row: ImportRow, section: Optional[str]) -> Dict:
    """Build a patient record from an imported row.

    A blank code gets a generated one; a blank Section (always the case for
    legacy files) takes the active section.
    """
    cols = row.columns()
    patient = create_empty(section)
    for name in (
        "Patient Name",
        "Patient Age",
        "Room",
        "Admitting Provider",
        "Diagnosis",
        "Diet",
        "Isolation",
        "Comments",
    ):
        patient[name] = cols[name]
    code = cols["Patient Code"].strip()
    if code:
        patient["Patient Code"] = code
    if cols["Section"].strip():
        patient["Section"] = cols["Section"].strip()
    patient["Symptoms"] = format_symptoms_cell(parse_symptoms_cell(cols["Symptoms (comma-separated)"]))
    patient["Symptoms Notes"] = format_notes_cell(parse_notes_cell(cols["Symptoms Notes (JSON map)"]))
    patient["Labs Abnormal"] = cols["Labs Abnormal (comma-separated)"]
    return patient


def is_done(patient: Dict) -> bool:
    v = patient.get("Done")
    if isinstance(v, str):
        return v.strip().upper() == "TRUE"
    return v is True


def filter_patients(
    patients: Iterable[Dict],
    section: Optional[str] = None,
    search: str = "",
    status: str = "all",
) -> List[Dict]:
    """status: all | open | done. Search is case-insensitive over SEARCH_FIELDS."""
    s = (search or "").strip().lower()
    out = []
    for p in patients:
        if section is not None and (p.get("Section") or DEFAULT_SECTION) != section:
            continue
        if s and not any(s in str(p.get(f) or "").lower() for f in SEARCH_FIELDS):
            continue
        if status == "done" and not is_done(p):
            continue
        if status == "open" and is_done(p):
            continue
        out.append(p)
    return out


def find_by_code(patients: Iterable[Dict], code: str) -> Optional[Dict]:
    return next((p for p in patients if p.get("Patient Code") == code), None)
