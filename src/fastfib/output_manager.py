# output_manager.py

import os
from pathlib import Path


def resolve_output_path(path: str | None, base: str | None = None) -> str:
    """
    Resolve a user-provided output directory.

    Rules:
    - None / "" => base (current directory when base is None)
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to base
    """
    root = base or os.getcwd()
    if not path:
        return os.path.normpath(root)

    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(root, path))


def result_filename(index: int) -> str:
    """File name used for a saved F(index)."""
    return f"Fibonacci_{index}.txt"


def save_result(index: int, text: str, directory: str | None = None) -> Path:
    """
    Write 'F(<index>) = <text>' to <directory>/Fibonacci_<index>.txt,
    replacing an existing file for the same index. Returns the path written.

    Raises OSError when the directory cannot be created or the file written;
    the caller decides how loud that is.
    """
    out_dir = Path(resolve_output_path(directory))
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / result_filename(index)
    with open(target, "w", encoding="utf-8") as fh:
        fh.write(f"F({index}) = {text}\n")
    return target
