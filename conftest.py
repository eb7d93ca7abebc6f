"""Root conftest: test settings must be in the environment before dm_service.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).resolve().parent / ".env.test"


def _load_env(path: Path) -> None:
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        # values already in the environment take precedence
        os.environ.setdefault(key.strip(), value.strip().strip("'\""))


if ENV_FILE.exists():
    _load_env(ENV_FILE)
