"""
Reference ranges for the labs card (common adult values, units omitted).
Order matters: summaries and chips follow it.
"""
from types import MappingProxyType

REFERENCE_RANGES = MappingProxyType(
    {
        "WBC": (4.0, 11.0),
        "HGB": (12.0, 16.0),
        "PLT": (150, 450),
        "ANC": (1.5, 8.0),
        "CRP": (0, 5),
        "Albumin": (3.5, 5.0),
        "Sodium (Na)": (135, 145),
        "Potassium (K)": (3.5, 5.1),
        "Chloride (Cl)": (98, 107),
        "Calcium (Ca)": (8.5, 10.5),
        "Phosphorus (Ph)": (2.5, 4.5),
        "Alkaline Phosphatase (ALP)": (44, 147),
        "Creatinine (Scr)": (0.6, 1.3),
        "BUN": (7, 20),
        "Total Bile": (0.1, 1.2),
    }
)

# display only
ABBREVIATIONS = MappingProxyType(
    {
        "Sodium (Na)": "Na",
        "Potassium (K)": "K",
        "Chloride (Cl)": "Cl",
        "Calcium (Ca)": "Ca",
        "Phosphorus (Ph)": "Ph",
        "Alkaline Phosphatase (ALP)": "ALP",
        "Creatinine (Scr)": "Scr",
        "Total Bile": "T.Bili",
    }
)

# Labs sheet columns; CRP Trend and Other are free text
LAB_FIELDS = (
    "Patient Code",
    "WBC",
    "HGB",
    "PLT",
    "ANC",
    "CRP",
    "Albumin",
    "CRP Trend",
    "Sodium (Na)",
    "Potassium (K)",
    "Chloride (Cl)",
    "Calcium (Ca)",
    "Phosphorus (Ph)",
    "Alkaline Phosphatase (ALP)",
    "Creatinine (Scr)",
    "BUN",
    "Total Bile",
    "Other",
    "Updated At",
)


def short_name(name: str) -> str:
    return ABBREVIATIONS.get(name, name)
