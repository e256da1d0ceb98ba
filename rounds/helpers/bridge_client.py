"""Client for the Apps Script bridge in front of the rounding spreadsheet.

Every call is ``action`` + ``spreadsheetId`` + JSON ``payload``; the bridge
answers ``{"ok": true, "data": ...}`` or ``{"ok": false, "error": "..."}``.
GET is tried first (what the browser build used through JSONP); a transport
failure, or a URL over ``max_url_len``, falls back to a POST form.
"""
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from rounds.clinical.patients import PATIENT_COLUMNS
from rounds.clinical.scores import CTCAE_FIELDS, ESAS_FIELDS, note_key
from rounds.commons.logger import logger
from rounds.commons.types import BridgeCfg
from rounds.labs.reference_ranges import LAB_FIELDS

TAB_PATIENTS = "Patients"
TAB_ESAS = "ESAS"
TAB_CTCAE = "CTCAE"
TAB_LABS = "Labs"


def _scored_columns(fields: Sequence[str]) -> List[str]:
    cols: List[str] = []
    for f in fields:
        cols.extend([f, note_key(f)])
    return cols


SCHEMA = {
    TAB_PATIENTS: list(PATIENT_COLUMNS),
    TAB_ESAS: ["Patient Code", *_scored_columns(ESAS_FIELDS), "Updated At"],
    TAB_CTCAE: ["Patient Code", "Enabled", *_scored_columns(CTCAE_FIELDS), "Other", "Updated At"],
    TAB_LABS: list(LAB_FIELDS),
}


class BridgeError(RuntimeError):
    pass


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return value


def to_row(obj: Optional[Dict[str, Any]], tab: str) -> List[Any]:
    obj = obj or {}
    return [_cell(obj.get(c)) for c in SCHEMA[tab]]


class SheetsBridge:
    def __init__(self, cfg: BridgeCfg, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.session = session or requests.Session()

    # ---------- transporte ----------
    def _params(self, action: str, payload: Optional[Dict]) -> Dict[str, str]:
        if not self.cfg.spreadsheet_id:
            raise BridgeError("Spreadsheet ID is required.")
        if not self.cfg.bridge_url:
            raise BridgeError("Bridge URL is required.")
        return {
            "action": action,
            "spreadsheetId": self.cfg.spreadsheet_id,
            "payload": json.dumps(payload or {}, ensure_ascii=False),
        }

    def url_for(self, action: str, payload: Optional[Dict]) -> str:
        req = requests.Request("GET", self.cfg.bridge_url, params=self._params(action, payload))
        return req.prepare().url

    def fits_in_url(self, action: str, payload: Optional[Dict]) -> bool:
        return len(self.url_for(action, payload)) <= self.cfg.max_url_len

    @staticmethod
    def _unwrap(resp: requests.Response) -> Any:
        try:
            resp.raise_for_status()
        except requests.HTTPError as ex:
            raise BridgeError(f"Bridge HTTP {resp.status_code}") from ex
        try:
            body = resp.json()
        except ValueError as ex:
            raise BridgeError(f"Bridge returned non-JSON body: {ex}") from ex
        if not isinstance(body, dict) or body.get("ok") is not True:
            err = body.get("error") if isinstance(body, dict) else None
            raise BridgeError(err or "Bridge error")
        return body.get("data")

    def call(self, action: str, payload: Optional[Dict] = None, timeout: Optional[float] = None) -> Any:
        timeout = timeout or self.cfg.timeout_sec
        params = self._params(action, payload)
        if self.fits_in_url(action, payload):
            try:
                resp = self.session.get(self.cfg.bridge_url, params=params, timeout=timeout)
                return self._unwrap(resp)
            except (requests.ConnectionError, requests.Timeout) as ex:
                logger.warning(f"Bridge GET {action} falló ({ex}); reintento por POST")
        try:
            resp = self.session.post(self.cfg.bridge_url, data=params, timeout=timeout)
        except requests.RequestException as ex:
            raise BridgeError(f"Bridge network error on {action}: {ex}") from ex
        return self._unwrap(resp)

    # ---------- lectura / secciones ----------
    def load_all(self) -> Dict[str, Any]:
        return self.call("loadAll", {}, timeout=60) or {}

    def ensure_section(self, name: str) -> bool:
        self.call("ensureSection", {"name": name}, timeout=30)
        return True

    def rename_section(self, old_name: str, new_name: str) -> bool:
        self.call("renameSection", {"oldName": old_name, "newName": new_name}, timeout=30)
        return True

    def delete_section(self, name: str) -> bool:
        self.call("deleteSection", {"name": name}, timeout=30)
        return True

    # ---------- pacientes ----------
    def insert_patient(self, patient: Dict) -> bool:
        self.call("insertPatient", {"row": to_row(patient, TAB_PATIENTS)})
        return True

    def pack_patients(self, patients: Iterable[Dict]) -> List[Dict[str, list]]:
        """Greedy batches of rows whose GET URL stays within max_url_len.

        A single row that alone exceeds the budget is sent as its own batch.
        """
        batches: List[Dict[str, list]] = []
        rows: list = []
        codes: list = []
        for p in patients:
            row = to_row(p, TAB_PATIENTS)
            code = str(p.get("Patient Code") or "")
            if self.fits_in_url("bulkInsertPatients", {"rows": rows + [row]}):
                rows.append(row)
                codes.append(code)
                continue
            if rows:
                batches.append({"rows": rows, "codes": codes})
            rows, codes = [row], [code]
            if not self.fits_in_url("bulkInsertPatients", {"rows": rows}):
                batches.append({"rows": rows, "codes": codes})
                rows, codes = [], []
        if rows:
            batches.append({"rows": rows, "codes": codes})
        return batches

    def codes_exist(self, codes: Iterable[str]) -> bool:
        try:
            data = self.load_all()
        except (BridgeError, requests.RequestException) as ex:
            logger.warning(f"No se pudo verificar la inserción: {ex}")
            return False
        present = {p.get("Patient Code") for p in data.get("patients") or []}
        return all(c in present for c in codes)

    def bulk_insert_patients(self, patients: Iterable[Dict]) -> bool:
        batches = self.pack_patients(patients)
        for i, b in enumerate(batches, start=1):
            try:
                self.call("bulkInsertPatients", {"rows": b["rows"]}, timeout=self.cfg.bulk_timeout_sec)
                logger.info(f"Lote {i}/{len(batches)}: {len(b['rows'])} paciente(s) insertados")
            except (BridgeError, requests.RequestException) as ex:
                # a timeout may still have written the rows
                if not self.codes_exist(b["codes"]):
                    raise
                logger.warning(f"Lote {i}/{len(batches)} reportó error ({ex}) pero los códigos existen")
        return True

    def write_patient_field(self, code: str, field: str, value: Any) -> bool:
        self.call("writePatientField", {"code": code, "field": field, "value": _cell(value)})
        return True

    def write_patient_fields(self, code: str, fields: Dict[str, Any]) -> bool:
        clean = {k: _cell(v) for k, v in fields.items()}
        self.call("writePatientFields", {"code": code, "fields": clean})
        return True

    def delete_patient(self, code: str) -> bool:
        self.call("deletePatient", {"code": code})
        return True

    def delete_patients_in_section(self, section: str) -> bool:
        if not section:
            return False
        self.call("deletePatientsInSection", {"section": section}, timeout=90)
        return True

    def bulk_delete_patients(self, codes: Iterable[str]) -> bool:
        batches: List[List[str]] = []
        cur: List[str] = []
        for c in [c for c in codes if c]:
            if self.fits_in_url("bulkDeletePatients", {"codes": cur + [c]}):
                cur.append(c)
            else:
                if cur:
                    batches.append(cur)
                cur = [c]
        if cur:
            batches.append(cur)
        for b in batches:
            self.call("bulkDeletePatients", {"codes": b}, timeout=90)
        return True

    # ---------- ESAS / CTCAE / Labs ----------
    def write_esas(self, record: Dict) -> bool:
        self.call("writeESAS", {"row": to_row(record, TAB_ESAS)})
        return True

    def write_ctcae(self, record: Dict) -> bool:
        self.call("writeCTCAE", {"row": to_row(record, TAB_CTCAE)})
        return True

    def write_labs(self, record: Dict) -> bool:
        self.call("writeLabs", {"row": to_row(record, TAB_LABS)})
        return True
