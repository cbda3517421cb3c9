from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping


def write_payload(document: Mapping[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(dict(document), indent=2, sort_keys=True, ensure_ascii=False),
        encoding="utf-8",
    )
    return path
