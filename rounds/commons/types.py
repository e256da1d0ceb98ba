from typing import Any, Dict, Literal

from pydantic import BaseModel, field_validator


class PathsCfg(BaseModel):
    logs_root: str = "logs"
    inbox: str = "inbox"
    archive: str = "archive"
    error: str = "error"


class BridgeCfg(BaseModel):
    spreadsheet_id: str = ""
    bridge_url: str = ""
    timeout_sec: float = 45
    bulk_timeout_sec: float = 120
    max_url_len: int = 9000

    @field_validator("bridge_url")
    @classmethod
    def _strip_slash(cls, v: str):
        return (v or "").strip().rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.spreadsheet_id and self.bridge_url)


class AiCfg(BaseModel):
    enabled: bool = False
    endpoint: str = ""
    timeout_sec: float = 25


class ImporterCfg(BaseModel):
    default_section: str = "Default"
    filename_glob: str = "*.csv"
    preview_rows: int = 10


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    paths: PathsCfg = PathsCfg()
    bridge: BridgeCfg = BridgeCfg()
    ai: AiCfg = AiCfg()
    importer: ImporterCfg = ImporterCfg()
    mode: Literal["bridge", "offline"] = "bridge"
