from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("fastfib")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .config import has_profile, load_settings
from .engine import EngineOptions, compute, digits_estimate, fib
from .runtime import APPLY, CFG
from .workspace import workspace_dir

__all__ = [
    "APPLY",
    "CFG",
    "EngineOptions",
    "__version__",
    "compute",
    "digits_estimate",
    "fib",
    "has_profile",
    "load_settings",
    "workspace_dir",
]
