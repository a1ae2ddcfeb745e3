from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib as toml
except Exception:
    import tomli as toml  # type: ignore

from fastfib.utility import UserInputError
from fastfib.workspace import ensure_workspace_seeded, workspace_dir

# Values used when a profile leaves a key out.
DEFAULTS: dict[str, dict[str, Any]] = {
    "ENGINE": {
        "DEFAULT_INDEX": 20_000_000,
        "PARALLEL_THRESHOLD_BITS": 16_000_000,
        "MAX_WORKERS": 2,
    },
    "DISPLAY": {
        "FULL_DIGITS_LIMIT": 100,
        "HEAD_DIGITS": 50,
        "TAIL_DIGITS": 50,
    },
    "OUTPUT": {
        "SAVE_DIR": "",
    },
    "BEHAVIOUR": {
        "DEBUG": False,
    },
}


@dataclass
class Settings:
    """
    Wrap the full TOML dict (without the [_PROFILE_] section).
    .as_dict() feeds runtime.apply().

    Added fields:
      - name:        resolved profile name (file stem if not given in [_PROFILE_])
      - description: one-line description from [_PROFILE_] or "(no description)"
    """
    data: dict[str, Any]
    name: str
    description: str
    _source: Path | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.data


def default_settings() -> Settings:
    return Settings(data=_merge_defaults({}), name="default", description="(built-in defaults)")


# --- Paths -----------------------------------------------------------------

def _profiles_dir() -> Path:
    return workspace_dir() / "profiles"


def _profile_path(name: str) -> Path:
    return _profiles_dir() / f"{name}.toml"


# --- I/O -------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as f:
            return toml.load(f)
    except Exception as e:
        lineno = getattr(e, "lineno", None)
        colno = getattr(e, "colno", None)
        msg = getattr(e, "msg", str(e))
        where = []
        if lineno is not None:
            where.append(f"line {lineno}")
        if colno is not None:
            where.append(f"column {colno}")
        loc = f" (at {', '.join(where)})" if where else ""
        # No traceback chaining
        raise UserInputError(f"reading {path.name}: {msg}{loc}.") from None


# --- Metadata handling -----------------------------------------------------


def _sanitize_oneline(s: str) -> str:
    return " ".join(str(s).split()) or "(no description)"


def _split_profile_data(raw: dict[str, Any], fallback_name: str) -> tuple[dict[str, Any], str, str]:
    """
    Extract [_PROFILE_] meta (name, description) and return:
      (settings_without_profile, resolved_name, resolved_description)
    """
    meta = raw.get("_PROFILE_") or {}
    data = {k: v for k, v in raw.items() if k != "_PROFILE_"}

    name = str(meta.get("name") or fallback_name)
    description = _sanitize_oneline(str(meta.get("description") or ""))

    return data, name, description


def _merge_defaults(data: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for section, values in DEFAULTS.items():
        given = data.get(section) or {}
        if not isinstance(given, dict):
            raise UserInputError(f"[{section}] must be a table, got {type(given).__name__}.")
        merged[section] = {**values, **given}
    # keep unknown sections as-is
    for section, values in data.items():
        merged.setdefault(section, values)
    return merged


def _check_int(data: dict[str, Any], section: str, key: str, *, minimum: int) -> None:
    val = data[section][key]
    if isinstance(val, bool) or not isinstance(val, int) or val < minimum:
        raise UserInputError(f"[{section}] {key} must be an integer >= {minimum}, got {val!r}.")


# --- Public API ------------------------------------------------------------


def list_all_profiles() -> list[str]:
    """
    Return the list of available profile *names* (filename stems).
    """
    ensure_workspace_seeded()
    pdir = _profiles_dir()
    if not pdir.exists():
        return []
    return sorted(p.stem for p in pdir.glob("*.toml"))


def list_profiles_with_descriptions() -> list[tuple[str, str]]:
    """
    Return [(name, description), ...] for all profiles.
    Profiles lacking [_PROFILE_] get "(no description)".
    """
    items: list[tuple[str, str]] = []
    for p in _profiles_dir().glob("*.toml"):
        try:
            raw = _load_toml(p)
            _, nm, desc = _split_profile_data(raw, p.stem)
            items.append((nm, desc))
        except UserInputError:
            # Best-effort listing; fall back to filename
            items.append((p.stem, "(no description)"))
    return sorted(items, key=lambda t: t[0].lower())


def has_profile(name: str) -> bool:
    return _profile_path(name).exists()


def load_settings(name: str | None) -> Settings:
    """
    Load a profile by name (default 'default'), strip the [_PROFILE_] metadata,
    fill in missing keys from DEFAULTS, validate the engine/display numbers and
    return Settings(data=..., name=..., description=..., _source=path).
    """
    if not name:
        name = "default"

    path = _profile_path(name)
    if not path.exists():
        raise FileNotFoundError(f"Profile '{name}' not found at {path}")

    raw = _load_toml(path)
    data, resolved_name, description = _split_profile_data(raw, path.stem)
    data = _merge_defaults(data)

    _check_int(data, "ENGINE", "DEFAULT_INDEX", minimum=1)
    _check_int(data, "ENGINE", "PARALLEL_THRESHOLD_BITS", minimum=-1)
    _check_int(data, "ENGINE", "MAX_WORKERS", minimum=1)
    _check_int(data, "DISPLAY", "FULL_DIGITS_LIMIT", minimum=1)
    _check_int(data, "DISPLAY", "HEAD_DIGITS", minimum=1)
    _check_int(data, "DISPLAY", "TAIL_DIGITS", minimum=1)

    return Settings(
        data=data,
        name=resolved_name,
        description=description,
        _source=path,
    )
