from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel


class AnalysisCfg(BaseModel):
    dump_hex: bool = True
    max_dump: int = 1024  # bytes per section, 0 = no limit
    show_strings: bool = True
    min_str_len: int = 4

    use_ranker: bool = False
    rank_limit: int = 25  # 0 = all
    rank_min: float = 0.0
    rank_timeout: float = 60.0

    workers: int = 4


class ContainerCfg(BaseModel):
    max_input_bytes: int = 200_000_000
    max_sections: int = 96


class ReportCfg(BaseModel):
    html: bool = True
    json_path: Optional[str] = None


class LoggingCfg(BaseModel):
    level: str = "WARNING"


class AppConfig(BaseModel):
    schema_version: str = "1.0"
    analysis: AnalysisCfg = AnalysisCfg()
    container: ContainerCfg = ContainerCfg()
    report: ReportCfg = ReportCfg()
    logging: LoggingCfg = LoggingCfg()


def load_config(path: Optional[str]) -> AppConfig:
    if not path:
        return AppConfig()
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(data)
