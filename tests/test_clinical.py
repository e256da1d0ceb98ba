from rounds.clinical import patients, scores, symptoms
from rounds.importer.pipeline import import_rows
from rounds.importer.templates import CURRENT_COLUMNS, LEGACY_COLUMNS


# ----------------- ESAS / CTCAE -----------------
def test_normalize_score_clamps_and_rounds():
    assert scores.normalize_score("7", scores.ESAS_MAX) == 7
    assert scores.normalize_score("12", scores.ESAS_MAX) == 10
    assert scores.normalize_score(-3, scores.ESAS_MAX) == 0
    assert scores.normalize_score("2.5", scores.CTCAE_MAX) == 3
    assert scores.normalize_score("", scores.ESAS_MAX) is None
    assert scores.normalize_score("abc", scores.ESAS_MAX) is None
    assert scores.normalize_score(None, scores.ESAS_MAX) is None


def test_set_score_clears_note_when_removed():
    rec = scores.empty_esas_record("P1")
    scores.set_score(rec, "Pain", 6, scores.ESAS_MAX)
    scores.set_note(rec, "Pain", "worse at night")
    assert rec["Pain"] == "6"
    assert rec["Pain Note"] == "worse at night"
    scores.set_score(rec, "Pain", None, scores.ESAS_MAX)
    assert rec["Pain"] == ""
    assert rec["Pain Note"] == ""
    assert rec["Updated At"]


def test_empty_ctcae_record_defaults():
    rec = scores.empty_ctcae_record("P2")
    assert rec["Enabled"] == "FALSE"
    assert not scores.is_enabled(rec["Enabled"])
    assert "Mucositis Note" in rec
    assert scores.is_enabled("true") and scores.is_enabled("TRUE") and scores.is_enabled(True)


def test_scored_items_in_field_order():
    rec = scores.empty_esas_record("P1")
    rec["Anxiety"] = "3"
    rec["Pain"] = "5"
    rec["Pain Note"] = "hip"
    assert scores.scored_items(rec, scores.ESAS_FIELDS) == [("Pain", "5", "hip"), ("Anxiety", "3", "")]


# ----------------- Síntomas -----------------
def test_symptom_synonyms_merge():
    sel = symptoms.normalize_selected(["Dyspnea", "Tiredness", "Pain", "Fatigue", "Unknown", ""])
    assert sel == ["Pain", "Fatigue", "Shortness of Breath"]


def test_notes_drop_unknown_and_blank():
    notes = symptoms.normalize_notes({"Sleep": "wakes 3x", "Pain": "  ", "Foo": "bar"})
    assert notes == {"Sleep Disturbance": "wakes 3x"}


def test_symptom_cells_codec():
    assert symptoms.parse_symptoms_cell("Nausea, Dyspnea ,,Pain") == ["Pain", "Nausea", "Shortness of Breath"]
    assert symptoms.format_symptoms_cell(["Nausea", "Pain"]) == "Pain, Nausea"
    assert symptoms.parse_notes_cell('{"Pain": "4/10"}') == {"Pain": "4/10"}
    assert symptoms.parse_notes_cell("{not json") == {}
    assert symptoms.parse_notes_cell('["Pain"]') == {}
    assert symptoms.format_notes_cell({}) == ""


def test_toggle_off_drops_note():
    sel, notes = symptoms.toggle(["Pain"], {"Pain": "x"}, "Nausea", True)
    assert sel == ["Pain", "Nausea"]
    sel, notes = symptoms.toggle(sel, notes, "Pain", False)
    assert sel == ["Nausea"]
    assert notes == {}


def test_display_label():
    assert symptoms.display_label("Fatigue") == "Fatigue (Tiredness)"
    assert symptoms.display_label("Pain") == "Pain"


# ----------------- Pacientes -----------------
def test_create_and_duplicate():
    p = patients.create_empty("Ward A")
    assert p["Patient Code"].startswith("P") and len(p["Patient Code"]) == 7
    assert p["Section"] == "Ward A"
    assert p["Done"] is False
    p["Patient Name"] = "Jane"
    p["Done"] = True
    d = patients.duplicate(p)
    assert d["Patient Code"] != p["Patient Code"]
    assert d["Patient Name"] == "Jane (Copy)"
    assert d["Done"] is False


def test_patient_from_legacy_import_takes_active_section():
    text = ",".join(LEGACY_COLUMNS) + "\n,Ana,80,3,Dr. Ali,Bowel obstruction,NPO,None,\n"
    row = import_rows(text).rows[0]
    p = patients.patient_from_import(row, "Ward B")
    assert p["Section"] == "Ward B"
    assert p["Diagnosis"] == "Bowel obstruction"
    assert p["Patient Code"].startswith("P")
    assert set(patients.PATIENT_COLUMNS) <= set(p)


def test_patient_from_current_import_keeps_section_and_symptoms():
    text = (
        ",".join(CURRENT_COLUMNS)
        + '\nC1,Bo,60,9,CHF,ICU,Dr. Noor,Low salt,None,,"Dyspnea, Pain","{""Dyspnea"": ""on exertion""}",\n'
    )
    p = patients.patient_from_import(import_rows(text).rows[0], "Ward B")
    assert p["Patient Code"] == "C1"
    assert p["Section"] == "ICU"
    assert p["Symptoms"] == "Pain, Shortness of Breath"
    assert p["Symptoms Notes"] == '{"Shortness of Breath": "on exertion"}'


def test_filter_patients():
    plist = [
        {"Patient Code": "A1", "Patient Name": "Ana", "Section": "Ward A", "Done": False, "Room": "3"},
        {"Patient Code": "B2", "Patient Name": "Bob", "Section": "Ward A", "Done": "TRUE", "Room": "12"},
        {"Patient Code": "C3", "Patient Name": "Cy", "Section": "", "Done": False, "Diagnosis": "Anemia"},
    ]
    assert [p["Patient Code"] for p in patients.filter_patients(plist, "Ward A")] == ["A1", "B2"]
    assert [p["Patient Code"] for p in patients.filter_patients(plist, "Ward A", status="done")] == ["B2"]
    assert [p["Patient Code"] for p in patients.filter_patients(plist, "Ward A", status="open")] == ["A1"]
    assert [p["Patient Code"] for p in patients.filter_patients(plist, "Default")] == ["C3"]
    assert [p["Patient Code"] for p in patients.filter_patients(plist, None, search="an")] == ["A1", "C3"]
    assert patients.find_by_code(plist, "B2")["Patient Name"] == "Bob"
    assert patients.find_by_code(plist, "ZZ") is None
