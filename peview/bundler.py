from __future__ import annotations
from pathlib import Path
import json
from typing import Dict, Any

def write_json(path: Path, obj: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")

def html_out_path(target: Path) -> Path:
    target = target.expanduser().resolve()
    return target.with_name(target.name + ".peview.html")
