"""Command-line demo: feed sample entropy, reseed once, print random bytes as hex."""

from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import LOG_LEVELS, load_config
from .core import Fortuna
from .errors import FortunaError
from .primitives import BACKENDS, get_primitives
from .storage import FileSeedStorage

logger = logging.getLogger("fortuna")

SAMPLE_ENTROPY = bytes([0x01, 0x02, 0x03, 0x04])
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def next_run_log_path(log_dir: Path, today: Optional[datetime.date] = None) -> Path:
    """Return ``<log_dir>/<YYYYMMDD>-<NNN>.log`` with the next free sequence number."""
    date_str = (today or datetime.date.today()).strftime("%Y%m%d")

    sequence = 1
    for path in sorted(log_dir.glob(f"{date_str}-*.log")):
        suffix = path.stem[len(date_str) + 1 :]
        if suffix.isdigit():
            sequence = max(sequence, int(suffix) + 1)

    return log_dir / f"{date_str}-{sequence:03d}.log"


def setup_logging(level: int, log_dir: Optional[Path] = None) -> Optional[Path]:
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_dir is None:
        return None
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = next_run_log_path(log_dir)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    return log_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fortuna", description=__doc__)
    parser.add_argument("--bytes", type=int, default=32, dest="num_bytes", help="number of random bytes to print")
    parser.add_argument("--seed-path", default=None, help="seed file (default: $FORTUNA_SEED_PATH or seed.dat)")
    parser.add_argument("--backend", choices=BACKENDS, default=None, help="primitives backend")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    parser.add_argument("--log-dir", type=Path, default=None, help="also write a dated run log into this directory")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(backend=args.backend, seed_path=args.seed_path, log_level=args.log_level)
    except FortunaError as exc:
        print(f"fortuna: {exc}", file=sys.stderr)
        return 1

    log_path = setup_logging(config.log_level_value, args.log_dir)
    if log_path is not None:
        logger.info("run log at %s", log_path)

    try:
        prims = get_primitives(config.backend, config.libcrypto_path)
        fortuna = Fortuna(FileSeedStorage(config.seed_path), prims)
        fortuna.add_entropy(SAMPLE_ENTROPY)
        fortuna.reseed()
        data = fortuna.get_random_bytes(args.num_bytes)
    except FortunaError as exc:
        logger.error("%s", exc)
        return 1

    print(data.hex())
    return 0
