#!/usr/bin/env python3
"""
Carpenter's Workshop
--------------------
Command line driver for workshop.py.

Input (stdin or --input <path>), one value per line:
  1. cabinet sizes separated by spaces (empty line = no cabinets),
     each in 1..1023, at most 64 cabinets
  2. number of items to work on (> 0)
  3. the items, one signed 64-bit integer per line

Output:
  Where the LAST item was found before it went on the workbench: the cabinet
  number (1-based), OUTSIDE or NEW. Any malformed input prints INPUT_ERROR.

Storage Config
--------------
- `--storage <yaml>` (or CARPENTER_STORAGE in .env) supplies the cabinet sizes:
      storage:
        cabinets: [3, 5, 10]
  In that case the input starts directly with the number of items.

Progress Reporting (script-level)
---------------------------------
- Flags: `--quiet`, `--verbose`, `--progress-json <path>`, `--trace-csv <path>`.
- Progress goes to stderr; stdout only carries the answer.
"""

import argparse
import json
import os
import re
import sys
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, TextIO, Tuple

import pandas as pd
import yaml
from dotenv import load_dotenv

from workshop import Found, Item, Outcome, WorkShop


# ---------- Progress utils (lightweight) ----------
@dataclass
class Step:
    name: str
    status: str = "pending"  # pending | in_progress | completed | failed
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    items_total: Optional[int] = None
    items_done: int = 0


class ProgressReporter:
    """Step timing and counters on stderr, optionally dumped to a JSON file."""

    def __init__(
        self,
        script: str,
        quiet: bool = False,
        verbose: bool = False,
        json_path: Optional[str] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.script = script
        self.quiet = quiet
        self.verbose = verbose
        self.json_path = json_path
        self.stream = stream if stream is not None else sys.stderr
        self.t0 = time.time()
        self.steps: List[Step] = []

    def _print(self, line: str, end: str = "\n") -> None:
        if not self.quiet:
            print(line, end=end, file=self.stream, flush=True)

    def start(self, name: str, total: Optional[int] = None) -> Step:
        st = Step(name=name, status="in_progress", started_at=time.time(), items_total=total)
        self.steps.append(st)
        if self.verbose:
            self._print(f"→ {name}…")
        return st

    def update(self, st: Step, done: int) -> None:
        st.items_done = done
        pct = int(100 * done / max(1, st.items_total or done))
        # Overwrite the same line on a terminal unless every step is logged
        end = "\r" if self.stream.isatty() and not self.verbose else "\n"
        self._print(f"{st.name}: {done}/{st.items_total} ({pct}%)", end=end)

    def end(self, st: Step, status: str = "completed") -> None:
        st.status = status
        st.ended_at = time.time()
        mark = "✓" if status == "completed" else "✗"
        self._print(f"{mark} {st.name} in {int(st.ended_at - st.started_at)}s")

    def finalize(self, totals: Dict[str, Any], errors: List[str]) -> None:
        elapsed = int(time.time() - self.t0)
        counters = ", ".join(f"{k}={v}" for k, v in totals.items()) or "none"
        self._print(f"[{self.script}] Summary: {counters} | elapsed={elapsed}s")
        for err in errors:
            self._print(f"⚠️ {err}")
        if self.json_path:
            payload = {
                "script": self.script,
                "elapsed_s": elapsed,
                "steps": [asdict(s) for s in self.steps],
                "totals": totals,
                "errors": errors,
            }
            Path(self.json_path).write_text(json.dumps(payload, indent=2), encoding="utf-8")


# ---------- Input limits ----------
MIN_CABINET_SIZE = 1
MAX_CABINET_SIZE = 1023
MAX_CABINETS = 64
ITEM_MIN = -(2 ** 63)
ITEM_MAX = 2 ** 63 - 1

INPUT_ERROR = "INPUT_ERROR"
STORAGE_ENV = "CARPENTER_STORAGE"

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_SIZES_CHARS = frozenset(" 0123456789")


class InputError(ValueError):
    """Raised for any malformed startup input or item line."""


@dataclass
class Job:
    cabinet_sizes: List[int]
    items: List[Item]


# ---------- Parsers ----------
def validate_cabinet_sizes(sizes: Sequence[int]) -> List[int]:
    if len(sizes) > MAX_CABINETS:
        raise InputError(f"too many cabinets: {len(sizes)} > {MAX_CABINETS}")
    for size in sizes:
        if not MIN_CABINET_SIZE <= size <= MAX_CABINET_SIZE:
            raise InputError(f"cabinet size out of range: {size}")
    return list(sizes)


def parse_cabinet_sizes(line: Optional[str]) -> List[int]:
    if line is None:
        raise InputError("missing cabinet sizes line")
    line = line.rstrip("\r\n")
    if any(ch not in _SIZES_CHARS for ch in line):
        raise InputError(f"invalid cabinet sizes line: {line!r}")
    return validate_cabinet_sizes([int(tok) for tok in line.split()])


def parse_int(line: Optional[str]) -> int:
    if line is None:
        raise InputError("unexpected end of input")
    text = line.strip()
    if not _INT_RE.fullmatch(text):
        raise InputError(f"not an integer: {text!r}")
    value = int(text)
    if not ITEM_MIN <= value <= ITEM_MAX:
        raise InputError(f"integer out of range: {text}")
    return value


def load_storage_config(path: Optional[str]) -> Optional[List[int]]:
    """Read cabinet sizes from a storage YAML; None when there is no such file.

    Expected structure:
      storage:
        cabinets: [1, 2, 3]
    """
    if not path:
        return None
    p = Path(path)
    if not p.exists():
        return None
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise InputError(f"failed to read {path}: {e}") from e
    storage = data.get("storage") if isinstance(data, dict) else None
    if not isinstance(storage, dict) or "cabinets" not in storage:
        raise InputError(f"{path} has no storage.cabinets list")
    cabinets = storage["cabinets"]
    if not isinstance(cabinets, list) or not all(isinstance(x, int) and not isinstance(x, bool) for x in cabinets):
        raise InputError(f"storage.cabinets in {path} must be a list of integers")
    return validate_cabinet_sizes(cabinets)


def read_job(lines: Iterable[str], cabinet_sizes: Optional[List[int]] = None) -> Job:
    """Parse the input lines. With cabinet_sizes given, the first line is the item count."""
    it: Iterator[str] = iter(lines)
    if cabinet_sizes is None:
        cabinet_sizes = parse_cabinet_sizes(next(it, None))
    count = parse_int(next(it, None))
    if count <= 0:
        raise InputError(f"number of items must be positive, got {count}")
    items = [parse_int(next(it, None)) for _ in range(count)]
    return Job(cabinet_sizes=cabinet_sizes, items=items)


def read_job_file(path: str, cabinet_sizes: Optional[List[int]] = None) -> Job:
    # Undecodable bytes survive as surrogates and fail parsing like any other junk
    try:
        f = Path(path).open("r", encoding="utf-8", errors="surrogateescape")
    except OSError as e:
        raise InputError(f"cannot read {path}: {e}") from e
    with f:
        return read_job(f, cabinet_sizes=cabinet_sizes)


# ---------- Simulation ----------
def render_outcome(outcome: Outcome) -> str:
    if outcome.found is Found.CABINET:
        return str(outcome.cabinet_nr)
    return outcome.found.name


def simulate(
    job: Job,
    prog: Optional[ProgressReporter] = None,
    step: Optional[Step] = None,
    trace: Optional[List[Dict[str, Any]]] = None,
) -> Tuple[Outcome, Dict[str, int]]:
    """Work on every item of the job. Returns the last outcome and per-kind counts."""
    shop = WorkShop(job.cabinet_sizes)
    counts = {kind.value: 0 for kind in Found}
    every = max(1, len(job.items) // 100)
    outcome = None
    for idx, item in enumerate(job.items, start=1):
        outcome = shop.work_on(item)
        counts[outcome.found.value] += 1
        if trace is not None:
            state = shop.snapshot()
            trace.append({
                "Step": idx,
                "Item": item,
                "Found": render_outcome(outcome),
                "Workbench": " ".join(map(str, state["workbench"])),
                "Cabinets": " | ".join(" ".join(map(str, c)) for c in state["cabinets"]),
                "Outside": " ".join(map(str, state["outside"])),
            })
        if prog is not None and step is not None and (idx % every == 0 or idx == len(job.items)):
            prog.update(step, done=idx)
    return outcome, counts


def write_trace_csv(trace: List[Dict[str, Any]], path: str) -> None:
    columns = ["Step", "Item", "Found", "Workbench", "Cabinets", "Outside"]
    df = pd.DataFrame(trace, columns=columns)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


# ------------- Main ---------------------
def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Carpenter's workshop: report where the last item was found")
    ap.add_argument("--input", default=None, help="Read input from this file instead of stdin")
    ap.add_argument("--storage", default=os.getenv(STORAGE_ENV), help=f"Storage YAML with cabinet sizes (default: ${STORAGE_ENV})")
    ap.add_argument("--trace-csv", default=None, help="Write a per-item trace of the workshop state to this CSV")
    ap.add_argument("--progress-json", default=None, help="Write progress JSON to this path")
    ap.add_argument("--quiet", action="store_true", help="Print nothing but the answer")
    ap.add_argument("--verbose", action="store_true", help="Print step-by-step logs")
    args = ap.parse_args(argv)

    prog = ProgressReporter(script="carpenter", quiet=args.quiet, verbose=args.verbose, json_path=args.progress_json)

    st_read = prog.start("Read input")
    try:
        sizes = load_storage_config(args.storage)
        if args.input:
            job = read_job_file(args.input, cabinet_sizes=sizes)
        else:
            job = read_job(sys.stdin, cabinet_sizes=sizes)
    except InputError as e:
        prog.end(st_read, status="failed")
        prog.finalize(totals={}, errors=[str(e)])
        print(INPUT_ERROR)
        return 0
    prog.end(st_read)

    st_proc = prog.start("Process items", total=len(job.items))
    trace: Optional[List[Dict[str, Any]]] = [] if args.trace_csv else None
    outcome, counts = simulate(job, prog, st_proc, trace)
    prog.end(st_proc)

    print(render_outcome(outcome))

    if trace is not None:
        write_trace_csv(trace, args.trace_csv)

    totals = {
        "cabinets": len(job.cabinet_sizes),
        "items": len(job.items),
        **counts,
    }
    prog.finalize(totals=totals, errors=[])
    return 0


if __name__ == "__main__":
    sys.exit(main())
