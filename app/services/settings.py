import copy
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_SETTINGS: Dict[str, Any] = {
    "log_level": "INFO",
    "log_path": None,
    "location": {
        # prompt | granted | denied
        "permission": "prompt",
        "services_enabled": True,
        "resolvable": True,
        "last_fix_path": "last_fix.yaml",
        "track": [
            [59.3293, 18.0686],
            [59.3326, 18.0649],
            [59.3360, 18.0630],
        ],
        "call_timeout_s": None,
    },
    "apps": {
        # desktop | static
        "source": "desktop",
        "search_paths": [],
        "static": [],
    },
    "classifier": {
        "extra_keywords": [],
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_settings(path: str | Path = "settings.yaml") -> Dict[str, Any]:
    """
    Read settings.yaml and lay it over the built-in defaults.
    A missing file yields the defaults unchanged.
    """
    path = Path(path)
    if not path.exists():
        return copy.deepcopy(DEFAULT_SETTINGS)
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(loaded).__name__}")
    return _merge(DEFAULT_SETTINGS, loaded)
