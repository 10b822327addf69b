"""JSON config file loading utilities."""

import json
from pathlib import Path
from typing import Any

from rigforge.constants import RIG_CONFIG_DIR


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path) as f:
        return json.load(f)


def list_rig_configs() -> list[str]:
    """Names of the rig descriptions under assets/config/rigs/."""
    if not RIG_CONFIG_DIR.is_dir():
        return []
    return sorted(p.stem for p in RIG_CONFIG_DIR.glob("*.json"))


def load_rig_config(name: str) -> dict[str, Any]:
    """Load a rig description from assets/config/rigs/.

    ``name`` may omit the ``.json`` suffix. The file must hold an object
    with a ``bones`` list; anything else raises ValueError.
    """
    if not name.endswith(".json"):
        name += ".json"
    data = load_json(RIG_CONFIG_DIR / name)
    if not isinstance(data, dict) or not isinstance(data.get("bones"), list):
        raise ValueError(f"Rig config {name} has no 'bones' list")
    return data
