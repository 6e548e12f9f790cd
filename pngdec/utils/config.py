import copy
import yaml
import os
from pathlib import Path

DEFAULT_CONFIG_PATH = "config/config.yaml"

DEFAULT_CONFIG = {
    "decoder": {"strict_end_chunk": False},
    "display": {"enabled": False, "window_name": None, "scale": 1, "wait_ms": 0},
    "export": {"output_dir": "output"},
    "logging": {"level": "INFO"},
}


def _resolve_path(p, project_root):
    if not isinstance(p, str):
        return p
    path = Path(p)
    resolved = path if path.is_absolute() else (project_root / path)
    return str(resolved)


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path=None):
    """
    Loads the YAML configuration file, fills in defaults for missing keys and
    normalizes `export.output_dir` to an absolute path relative to the
    repository root (pngdec/.. -> project root).

    With no `config_path`, `config/config.yaml` is used if present and the
    built-in defaults otherwise. An explicit path that does not exist raises
    FileNotFoundError.
    """
    # Get project root (assuming this file is in pngdec/utils/)
    current_dir = Path(__file__).resolve().parent
    project_root = current_dir.parent.parent

    explicit = config_path is not None
    config_path = config_path if explicit else DEFAULT_CONFIG_PATH

    # Allow absolute paths or paths relative to project root
    if os.path.isabs(config_path):
        target_path = Path(config_path)
    else:
        target_path = project_root / config_path

    if target_path.exists():
        with open(target_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {target_path}")
    else:
        loaded = {}

    config = _merge(DEFAULT_CONFIG, loaded)

    export = config.get("export")
    if isinstance(export, dict) and "output_dir" in export:
        export["output_dir"] = _resolve_path(export["output_dir"], project_root)

    return config
