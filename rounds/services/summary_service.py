# rounds/services/summary_service.py
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from rounds.clinical.scores import CTCAE_FIELDS, ESAS_FIELDS, is_enabled, scored_items
from rounds.commons.logger import logger
from rounds.commons.types import AiCfg
from rounds.labs.classifier import summarize_abnormalities


class SummaryError(RuntimeError):
    pass


def format_datetime(iso: Optional[str]) -> str:
    """ISO -> 'YYYY-MM-DD HH:MM'; unreadable values come back as-is."""
    if not iso:
        return "—"
    try:
        d = datetime.fromisoformat(str(iso).replace("Z", "+00:00"))
    except ValueError:
        return str(iso)
    return d.strftime("%Y-%m-%d %H:%M")


def _v(record: Dict, key: str) -> str:
    val = record.get(key)
    return "" if val is None else str(val)


def _bullets(items: List[str]) -> List[str]:
    return ["• " + s for s in items]


def build_local_summary(bundle: Optional[Dict[str, Any]]) -> str:
    """Plain-text rounding summary from {patient, esas, ctcae, labs}."""
    bundle = bundle or {}
    patient = bundle.get("patient")
    if not patient:
        return "No patient selected."
    esas = bundle.get("esas")
    ctcae = bundle.get("ctcae")
    labs = bundle.get("labs")

    name = _v(patient, "Patient Name") or _v(patient, "Patient Code") or "Unknown"
    age = f"{_v(patient, 'Patient Age')} yrs" if _v(patient, "Patient Age") else "—"
    parts: List[str] = [
        f"Patient: {name} — Age: {age}, Room: {_v(patient, 'Room') or '—'}",
        f"Admitting Provider: {_v(patient, 'Admitting Provider') or '—'}",
        f"Diagnosis: {_v(patient, 'Diagnosis') or '—'}",
        f"Diet: {_v(patient, 'Diet') or '—'} | Isolation: {_v(patient, 'Isolation') or '—'}",
    ]
    if _v(patient, "Comments"):
        parts.append(f"Comments: {_v(patient, 'Comments')}")

    hpi = []
    for key, label in (
        ("HPI Diagnosis", "HPI Diagnosis"),
        ("HPI Initial", "Initial"),
        ("HPI Previous", "Previous"),
        ("HPI Current", "Current"),
    ):
        if _v(patient, key):
            hpi.append(f"{label}: {_v(patient, key)}")
    if hpi:
        parts += ["", "HPI:", *hpi]

    for key, label in (
        ("Patient Assessment", "Assessment"),
        ("Medication List", "Medications"),
        ("Latest Notes", "Latest Notes"),
    ):
        if _v(patient, key):
            parts += ["", f"{label}: {_v(patient, key)}"]

    esas_lines = [
        f"{item}: {score}" + (f" ({note})" if note else "")
        for item, score, note in scored_items(esas, ESAS_FIELDS)
    ]
    if esas_lines:
        parts += ["", "ESAS (0–10):", *_bullets(esas_lines)]

    if ctcae:
        if is_enabled(ctcae.get("Enabled")):
            ctcae_lines = [
                f"{item}: {score}" + (f" ({note})" if note else "")
                for item, score, note in scored_items(ctcae, CTCAE_FIELDS)
            ]
            if _v(ctcae, "Other"):
                ctcae_lines.append(f"Other: {_v(ctcae, 'Other')}")
            if ctcae_lines:
                parts += ["", "CTCAE (0–4):", *_bullets(ctcae_lines)]
        else:
            parts += ["", "CTCAE: disabled"]

    summary = summarize_abnormalities(labs)
    if summary.findings or summary.other:
        parts += ["", "Labs:"]
        if summary.high:
            parts += ["High:", *_bullets([f"{a.name}: {a.value_text} ↑" for a in summary.high])]
        if summary.low:
            parts += ["Low:", *_bullets([f"{a.name}: {a.value_text} ↓" for a in summary.low])]
        if summary.other:
            parts.append(f"Other: {summary.other}")

    parts += ["", f"Last Updated: {format_datetime(_v(patient, 'Updated At'))}"]
    return "\n".join(parts)


def remote_summarize(endpoint: str, bundle: Dict[str, Any], timeout: float = 25) -> str:
    """POST {"bundle": ...} to the summary proxy; it holds the provider keys."""
    if not endpoint:
        raise SummaryError("Missing AI proxy endpoint.")
    try:
        resp = requests.post(endpoint, json={"bundle": bundle}, timeout=timeout)
    except requests.RequestException as ex:
        raise SummaryError(f"AI proxy request failed: {ex}") from ex
    if not resp.ok:
        raise SummaryError(f"AI proxy HTTP {resp.status_code}")

    content_type = resp.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = resp.json()
        except ValueError as ex:
            raise SummaryError(f"AI proxy: invalid JSON ({ex})") from ex
        summary = None
        if isinstance(data, dict):
            summary = data.get("summary") or data.get("result") or data.get("text")
        if not summary:
            raise SummaryError("AI proxy: no summary field.")
        return str(summary)
    text = (resp.text or "").strip()
    return text or "(empty AI response)"


class SummaryService:
    def __init__(self, ai_cfg: AiCfg):
        self.ai_cfg = ai_cfg

    @property
    def remote(self) -> bool:
        return bool(self.ai_cfg.enabled and self.ai_cfg.endpoint)

    def summarize(self, bundle: Dict[str, Any]) -> str:
        if self.remote:
            logger.info(f"Generando resumen remoto vía {self.ai_cfg.endpoint}")
            return remote_summarize(self.ai_cfg.endpoint, bundle, self.ai_cfg.timeout_sec)
        return build_local_summary(bundle)
