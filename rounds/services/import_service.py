# rounds/services/import_service.py
import asyncio
import json
import os
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

import requests

from rounds.clinical.patients import patient_from_import
from rounds.commons.logger import logger
from rounds.commons.types import PathsCfg
from rounds.helpers.bridge_client import BridgeError, SheetsBridge
from rounds.helpers.file_transport import FileWatcher, read_text_retry
from rounds.importer.models import ImportFailure, ImportStatus
from rounds.importer.pipeline import import_rows


def generate_report_filename(source: str, origin: str = "file", extension: str = "json") -> str:
    """
    Nombre del reporte en archive/, con timestamp y origen.
    Ej: 20250821-170605-123456_import_file_ward_3b.json
    """
    if not isinstance(source, str):
        raise TypeError(f"Invalid type for source: expected str, got {type(source).__name__}")
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    base_name = os.path.splitext(os.path.basename(source))[0] or "stdin"
    safe_base = re.sub(r"[^a-zA-Z0-9_\-]", "_", base_name)
    return f"{ts}_import_{origin}_{safe_base}.{extension}"


class ImportService:
    def __init__(
        self,
        paths: PathsCfg,
        bridge: Optional[SheetsBridge] = None,
        default_section: str = "Default",
    ):
        self.paths = paths
        self.bridge = bridge
        self.default_section = default_section
        # fuentes con una importación en curso
        self._inflight: Set[str] = set()
        Path(paths.archive).mkdir(parents=True, exist_ok=True)
        Path(paths.error).mkdir(parents=True, exist_ok=True)

    def _to_error(self, text: str, src: str) -> Path:
        err_name = Path(src).name if src else "stdin.err.csv"
        errp = Path(self.paths.error) / err_name
        errp.write_text(text, encoding="utf-8")
        if src and Path(src).exists() and Path(src).resolve() != errp.resolve():
            Path(src).unlink()
        return errp

    def _archive_source(self, src: str):
        if src and Path(src).exists():
            dst_dir = Path(self.paths.archive) / "csv"
            dst_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(src, dst_dir / Path(src).name)

    async def process_text(self, text: str, src: str = "", section: Optional[str] = None) -> Dict:
        if not src:
            return await self._process_text(text, src, section)
        key = str(Path(src).resolve())
        # sin await entre la comprobación y el alta: atómico dentro del loop
        if key in self._inflight or not Path(src).exists():
            logger.debug(f"{Path(src).name}: ya procesado o en curso, se omite")
            return {"ok": True, "skipped": True, "source": src}
        self._inflight.add(key)
        try:
            return await self._process_text(text, src, section)
        finally:
            self._inflight.discard(key)

    async def _process_text(self, text: str, src: str, section: Optional[str]) -> Dict:
        section = section or self.default_section
        try:
            # 1) valida cabecera y filas
            result = import_rows(text)
            if isinstance(result, ImportFailure):
                errp = self._to_error(text, src)
                logger.error(f"Importación rechazada ({errp.name}):\n{result.diagnostic}")
                return {"ok": False, "error": result.diagnostic, "moved_to": str(errp)}

            if result.status != ImportStatus.OK:
                logger.warning(f"{src or 'stdin'}: sin filas de datos ({result.status.value})")

            # 2) filas -> pacientes (la sección la aporta quien importa)
            patients: List[Dict] = [patient_from_import(r, section) for r in result.rows]

            # 3) escritura en la hoja
            if patients and self.bridge is not None:
                await asyncio.to_thread(self.bridge.bulk_insert_patients, patients)

            report = {
                "ok": True,
                "source": src,
                "mode": result.mode,
                "status": result.status.value,
                "section": section,
                "imported": len(patients),
                "skipped_blank": result.skipped_blank,
                "codes": [p["Patient Code"] for p in patients],
                "pushed": bool(patients and self.bridge is not None),
            }
            out_json = Path(self.paths.archive) / generate_report_filename(src or "stdin")
            out_json.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
            logger.info(f"Importación procesada: {len(patients)} paciente(s), reporte {out_json}")

            # 4) mueve el CSV procesado a archive/csv/
            self._archive_source(src)
            report["report"] = str(out_json)
            return report

        except (BridgeError, requests.RequestException) as ex:
            errp = self._to_error(text, src)
            logger.error(f"Fallo escribiendo en la hoja: {ex}. Movido a {errp}")
            return {"ok": False, "error": str(ex), "moved_to": str(errp)}
        except Exception as ex:
            errp = self._to_error(text, src)
            logger.exception(f"Error procesando importación: {ex}. Movido a {errp}")
            return {"ok": False, "error": str(ex), "moved_to": str(errp)}

    async def process_backlog(self, glob_pat: str) -> List[Dict]:
        inbox = Path(self.paths.inbox)
        files = sorted(inbox.glob(glob_pat))
        if not files:
            return []
        logger.info(f"Backlog detectado: {len(files)} archivo(s) en {inbox}")
        reports = []
        for f in files:
            try:
                text = read_text_retry(f)
            except FileNotFoundError:
                continue
            reports.append(await self.process_text(text, str(f)))
        return reports

    async def run_file_mode(self, glob_pat: str, stop_event: Optional[asyncio.Event] = None):
        loop = asyncio.get_running_loop()

        # 1) backlog existente
        await self.process_backlog(glob_pat)

        # 2) watcher para archivos nuevos
        watcher = FileWatcher(self.paths.inbox, glob_pat, self.process_text, loop)
        watcher.start()
        logger.info(f"Escuchando carpeta de importación {self.paths.inbox}...")
        try:
            await (stop_event or asyncio.Event()).wait()
        finally:
            watcher.stop()
