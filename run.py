import asyncio
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml

from rounds.commons.logger import setup_logging
from rounds.commons.types import Settings
from rounds.helpers.bridge_client import SheetsBridge
from rounds.importer.models import ImportFailure
from rounds.importer.pipeline import import_rows, preview
from rounds.importer.templates import CURRENT, LEGACY, template_csv
from rounds.labs.classifier import classify, labs_abnormal_text, summarize_abnormalities
from rounds.services.import_service import ImportService
from rounds.services.summary_service import SummaryError, SummaryService

app = typer.Typer(add_completion=False, help="Palliative Rounds toolkit")

DEFAULT_CFG = "rounds/configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Ruta absoluta a un recurso, como .exe (PyInstaller) o en desarrollo"""
    if hasattr(sys, "_MEIPASS"):
        base_path = sys._MEIPASS
    else:
        base_path = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(base_path, relative_path)


def load_cfg(path: Optional[str] = None) -> Settings:
    config_path = path or os.getenv("ROUNDS_CONFIG") or resource_path(DEFAULT_CFG)
    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return Settings.model_validate(raw)


def _init(config: Optional[str]):
    cfg = load_cfg(config)
    logger = setup_logging(cfg.paths.logs_root, os.getenv("LOG_LEVEL", "INFO"))
    return cfg, logger


def _bridge(cfg: Settings) -> Optional[SheetsBridge]:
    if cfg.mode == "bridge" and cfg.bridge.configured:
        return SheetsBridge(cfg.bridge)
    return None


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8-sig")


@app.command()
def check(
    csv_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    rows: Optional[int] = typer.Option(None, help="filas de la vista previa (por defecto importer.preview_rows)"),
    config: Optional[str] = typer.Option(None, help="ruta a settings.yaml"),
):
    """Validate a CSV against the import templates and show a preview."""
    cfg, _ = _init(config)
    result = import_rows(_read(csv_file))
    if isinstance(result, ImportFailure):
        typer.echo(result.diagnostic, err=True)
        raise typer.Exit(code=1)
    table, note = preview(result, rows or cfg.importer.preview_rows)
    typer.echo(f"Template: {result.mode or '-'} | status: {result.status.value}")
    for line in table:
        typer.echo(" | ".join(line))
    typer.echo(note)


@app.command("import-csv")
def import_csv(
    csv_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    section: Optional[str] = typer.Option(None, help="sección destino (por defecto la de settings)"),
    config: Optional[str] = typer.Option(None, help="ruta a settings.yaml"),
):
    """Import a CSV into the patient list (pushes to the sheet when configured)."""
    cfg, logger = _init(config)
    bridge = _bridge(cfg)
    if bridge is None:
        logger.warning("Bridge no configurado: solo se genera el reporte local")
    svc = ImportService(cfg.paths, bridge, cfg.importer.default_section)
    report = asyncio.run(svc.process_text(_read(csv_file), "", section))
    typer.echo(json.dumps(report, ensure_ascii=False, indent=2))
    if not report.get("ok"):
        raise typer.Exit(code=1)


@app.command()
def watch(config: Optional[str] = typer.Option(None, help="ruta a settings.yaml")):
    """Process the inbox backlog, then watch it for new CSV files."""
    cfg, logger = _init(config)
    logger.log("INFO", "Iniciando lectura de importaciones pendientes")
    svc = ImportService(cfg.paths, _bridge(cfg), cfg.importer.default_section)
    asyncio.run(svc.run_file_mode(cfg.importer.filename_glob))


@app.command()
def labs(values: List[str] = typer.Argument(..., help='pares "Nombre=valor", p.ej. WBC=15.2')):
    """Classify lab values and print the abnormal chips."""
    record = {}
    for pair in values:
        name, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected Name=value, got {pair!r}")
        record[name.strip()] = value.strip()
    for name, value in record.items():
        c = classify(name, value)
        parsed = "-" if c.parsed_value is None else c.parsed_value
        typer.echo(f"{name}: {value!r} -> {c.status} ({parsed})")
    typer.echo("Labs Abnormal: " + (labs_abnormal_text(summarize_abnormalities(record)) or "-"))


@app.command()
def summary(
    bundle_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    config: Optional[str] = typer.Option(None, help="ruta a settings.yaml"),
):
    """Print the rounding summary for a JSON bundle {patient, esas, ctcae, labs}."""
    cfg, logger = _init(config)
    bundle = json.loads(bundle_file.read_text(encoding="utf-8"))
    try:
        typer.echo(SummaryService(cfg.ai).summarize(bundle))
    except SummaryError as ex:
        logger.error(f"Resumen no disponible: {ex}")
        typer.echo("(Summary unavailable)", err=True)
        raise typer.Exit(code=1)


@app.command()
def template(
    legacy: bool = typer.Option(False, "--legacy", help="plantilla antigua de 9 columnas"),
    output: Optional[Path] = typer.Option(None, help="archivo destino; stdout si se omite"),
):
    """Write the header line of a blank import template."""
    text = template_csv(LEGACY if legacy else CURRENT)
    if output:
        output.write_text(text, encoding="utf-8")
    else:
        typer.echo(text, nl=False)


if __name__ == "__main__":
    app()
