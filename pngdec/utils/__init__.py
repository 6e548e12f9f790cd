import os

from .config import load_config, DEFAULT_CONFIG

def get_project_root():
    # From pngdec/utils/__init__.py, go up: utils -> pngdec -> project_root
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

__all__ = ["load_config", "DEFAULT_CONFIG", "get_project_root"]
