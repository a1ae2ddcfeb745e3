# src/fastfib/cli.py

"""
fastfib - exact Fibonacci numbers by fast doubling

Description:
    Computes F(N) exactly with the fast-doubling recursion on GMP integers,
    prints its digit count and its first/last digits (or the whole number
    when it is short), optionally saves the full value to Fibonacci_<N>.txt
    and reports how long the computation took.

usage: see fastfib -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import sys
import textwrap
import threading
import time
import traceback
from dataclasses import dataclass

from colorama import Fore, Style
from colorama import init as colorama_init

from fastfib import config as CONFIG
from fastfib.engine import EngineOptions, compute, digits_estimate, recursion_depth
from fastfib.fmt import digit_summary, format_seconds, performance_lines, result_lines
from fastfib.output_manager import result_filename, save_result
from fastfib.progress import Progress
from fastfib.runtime import APPLY, CFG, current, debug_print, reset
from fastfib.utility import UserInputError, dec_digits, flatten_dotted, parse_index, typename
from fastfib.workspace import ensure_workspace_seeded

PROG = "fastfib"


# ---- parse result variants ----

@dataclass(frozen=True)
class RunRequest:
    index: int | None                 # None -> profile ENGINE.DEFAULT_INDEX
    save: bool = False
    output: str | None = None
    profile: str | None = None
    threshold_bits: int | None = None  # None -> profile value; -1 -> never split
    workers: int | None = None
    quiet: bool = False
    debug: bool = False


@dataclass(frozen=True)
class ExitRequest:
    status: int
    message: str | None = None
    show_usage: bool = False


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports problems instead of exiting the process."""

    def error(self, message):
        raise UserInputError(message)


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    try:
        faulthandler.enable()
    except (OSError, ValueError):
        # stderr has no file descriptor (captured or redirected)
        pass

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    # worker threads of the engine's pool
    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _restore_error_handlers(excepthook, thread_excepthook, faulthandler_was_enabled: bool) -> None:
    """Undo _install_loud_error_handlers once main() is done."""
    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook
    if not faulthandler_was_enabled and faulthandler.is_enabled():
        faulthandler.disable()


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if msg.startswith("Error:"):
        msg = msg[len("Error:"):].lstrip()
    print(f"{prefix} {msg}", file=sys.stderr)


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent(f"""\
    examples:
      {PROG}              # Compute F(20000000), don't save
      {PROG} -s           # Compute F(20000000), save to file
      {PROG} -s 1000000   # Compute F(1000000), save to file
      {PROG} 100          # Compute F(100), don't save
    """)

    p = _Parser(
        prog=PROG,
        description="Exact N-th Fibonacci number by fast doubling",
        usage=(
            f"{PROG} [-s] [-h] [N] [--output DIR] [--profile NAME]\n"
            "               [--threshold-bits BITS] [--workers W] [--quiet] [--debug]"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
        add_help=False,
    )
    p.add_argument("items", nargs="*", metavar="N",
                   help="Fibonacci number to compute (default: 20000000)")
    p.add_argument("-s", "--save", action="store_true", help="Save result to file (optional)")
    p.add_argument("-h", "--help", action="store_true", help="Show this help message")
    p.add_argument("--output", default=None, metavar="DIR",
                   help="Directory for Fibonacci_<N>.txt (default: profile OUTPUT.SAVE_DIR or current dir)")
    p.add_argument("--profile", default=None, metavar="NAME", help="Settings profile from the workspace")
    p.add_argument("--threshold-bits", type=int, default=None, metavar="BITS",
                   help="Split doubling steps across threads from this operand size (0 = always, -1 = never)")
    p.add_argument("--workers", type=int, default=None, metavar="W", help="Worker threads for split steps")
    p.add_argument("--quiet", action="store_true", help="No progress indicator")
    p.add_argument("--debug", action="store_true", help="Show settings and internal trace info")

    return p


def usage_text() -> str:
    return _build_parser().format_help()


def parse_request(argv: list[str] | None = None) -> RunRequest | ExitRequest:
    """
    Turn command-line arguments into either a RunRequest or an ExitRequest.
    Nothing is printed here; main() renders ExitRequests.
    """
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except UserInputError as e:
        return ExitRequest(1, f"Error: {e}", show_usage=True)

    if args.help:
        return ExitRequest(0, None, show_usage=True)

    index = None
    # like the -s flag, N may appear anywhere; the last one wins
    for item in args.items:
        try:
            index = parse_index(item)
        except UserInputError as e:
            return ExitRequest(1, f"Error: {e}", show_usage=True)

    if args.threshold_bits is not None and args.threshold_bits < -1:
        return ExitRequest(1, f"Error: --threshold-bits must be >= -1, got {args.threshold_bits}", show_usage=True)
    if args.workers is not None and args.workers < 1:
        return ExitRequest(1, f"Error: --workers must be >= 1, got {args.workers}", show_usage=True)

    return RunRequest(
        index=index,
        save=args.save,
        output=args.output,
        profile=args.profile,
        threshold_bits=args.threshold_bits,
        workers=args.workers,
        quiet=args.quiet,
        debug=args.debug,
    )


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    hooks = (sys.excepthook, threading.excepthook, faulthandler.is_enabled())
    try:
        return _main_impl(argv)
    except UserInputError as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except MemoryError:
        # no partial result is meaningful; let the interpreter abort
        raise
    except Exception as e:
        debug = "--debug" in (argv if argv is not None else sys.argv)
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1
    finally:
        _restore_error_handlers(*hooks)


def _apply_profile(name: str | None, debug: bool = False) -> int | None:
    """Load and install a profile. Returns an exit status on failure, else None."""
    ensure_workspace_seeded()

    if name and not CONFIG.has_profile(name):
        print(f"Unknown profile: '{name}'", file=sys.stderr)
        print("Available profiles:", file=sys.stderr)
        for nm, desc in CONFIG.list_profiles_with_descriptions():
            print(f"  {nm:<15} {desc}", file=sys.stderr)
        return 2

    profile_name = name or "default"
    if CONFIG.has_profile(profile_name):
        selected = CONFIG.load_settings(profile_name)
    else:
        selected = CONFIG.default_settings()
    APPLY(selected)
    if debug:
        # --debug wins over the profile's BEHAVIOUR.DEBUG
        current().debug = True

    debug_print(f"active profile: {selected.name}")
    if selected._source:
        debug_print(f"profile file: {selected._source}")
    flat = flatten_dotted(selected.as_dict())
    for k in sorted(flat, key=str.lower):
        debug_print(f"  {k:.<40} {flat[k]!r} ({typename(flat[k])})")
    return None


def _engine_options(req: RunRequest) -> EngineOptions:
    bits = req.threshold_bits
    if bits is None:
        bits = int(CFG("ENGINE.PARALLEL_THRESHOLD_BITS", 16_000_000))
    workers = req.workers if req.workers is not None else int(CFG("ENGINE.MAX_WORKERS", 2))
    return EngineOptions(threshold_bits=None if bits < 0 else bits, max_workers=workers)


def _save(index: int, text: str, directory: str | None) -> None:
    name = result_filename(index)
    print(f"Writing to file {name}... ", end="", flush=True)
    try:
        path = save_result(index, text, directory)
    except OSError as e:
        print("failed.")
        print(f"{Fore.YELLOW}Couldn't create file {name}{Style.RESET_ALL} ({e.__class__.__name__}: {e})")
        return
    print(f"Number saved to: {path}")


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init(autoreset=True)
    rt = reset()

    req = parse_request(argv)
    if isinstance(req, ExitRequest):
        if req.message:
            _print_user_error(req.message)
            print(file=sys.stderr)
        if req.show_usage:
            print(usage_text(), file=sys.stderr if req.status else sys.stdout)
        return req.status

    rt.debug = req.debug
    _install_loud_error_handlers(req.debug)

    status = _apply_profile(req.profile, req.debug)
    if status is not None:
        return status

    index = req.index if req.index is not None else int(CFG("ENGINE.DEFAULT_INDEX", 20_000_000))
    options = _engine_options(req)
    save_dir = req.output if req.output is not None else (CFG("OUTPUT.SAVE_DIR", "") or None)

    debug_print(f"index={index} threshold_bits={options.threshold_bits} workers={options.max_workers}")
    debug_print(f"expected ~{digits_estimate(index)} digits, {recursion_depth(index)} doubling steps")
    if req.save:
        debug_print(f"save directory: {save_dir or os.getcwd()}")

    print(f"Computing F({index})...\n")
    if req.save:
        print("Result will be saved to file.")

    bar = Progress(recursion_depth(index), enabled=not req.quiet and not rt.debug and sys.stderr.isatty())
    start = time.perf_counter()
    try:
        value, _ = compute(index, options=options, progress=bar if bar.enabled else None)
    finally:
        bar.done()
    elapsed = time.perf_counter() - start

    print(f"Computation completed in {format_seconds(elapsed)}")

    io_start = time.perf_counter()

    digits = dec_digits(value)
    print(digit_summary(index, digits))

    text = None
    if req.save:
        text = str(value)
        _save(index, text, save_dir)

    for line in result_lines(index, value, digits=digits, text=text):
        print(line)

    io_elapsed = time.perf_counter() - io_start

    print()
    for line in performance_lines(digits, elapsed, io_elapsed):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
