# ===============================
# File: rounds/importer/models.py
# ===============================
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ImportStatus(str, Enum):
    OK = "ok"
    EMPTY_FILE = "empty_file"
    NO_DATA_ROWS = "no_data_rows"


class ImportRow(BaseModel):
    """One data row in current-template column order.

    Field aliases are the exact column names; ``columns()`` gives the
    13 key mapping the rest of the app works with.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    patient_code: str = Field("", alias="Patient Code")
    patient_name: str = Field("", alias="Patient Name")
    patient_age: str = Field("", alias="Patient Age")
    room: str = Field("", alias="Room")
    diagnosis: str = Field("", alias="Diagnosis")
    section: str = Field("", alias="Section")
    admitting_provider: str = Field("", alias="Admitting Provider")
    diet: str = Field("", alias="Diet")
    isolation: str = Field("", alias="Isolation")
    comments: str = Field("", alias="Comments")
    symptoms: str = Field("", alias="Symptoms (comma-separated)")
    symptoms_notes: str = Field("", alias="Symptoms Notes (JSON map)")
    labs_abnormal: str = Field("", alias="Labs Abnormal (comma-separated)")

    @classmethod
    def from_cells(cls, columns: Tuple[str, ...], cells: List[str]) -> "ImportRow":
        return cls.model_validate(dict(zip(columns, cells)))

    def columns(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class HeaderMatch:
    mode: str
    columns: Tuple[str, ...]


@dataclass(frozen=True)
class ImportFailure:
    diagnostic: str
    found: List[str] = field(default_factory=list)
    ok: bool = field(default=False, init=False)


@dataclass(frozen=True)
class ImportSuccess:
    mode: Optional[str]
    rows: List[ImportRow]
    status: ImportStatus = ImportStatus.OK
    skipped_blank: int = 0
    ok: bool = field(default=True, init=False)

    @property
    def has_rows(self) -> bool:
        return bool(self.rows)
