#!/usr/bin/env python3
"""
  gol-color: Conway's Game of Life on a torus, painted straight into the
  terminal with ANSI background colours.

  Newborn cells flash green, dying cells flash red, survivors stay white
  and empty space is black.  ``--bw`` drops the change colours and shows
  plain black and white.

Usage:
  python3 gol_color.py 25 50 5              # 25 tall, 50 wide, at most 5 gen/s
  python3 gol_color.py --bw 25 50 10        # black and white only
  python3 gol_color.py 40 120 0             # uncapped frame rate
  python3 gol_color.py --seed 7 --stats life.csv 25 50 5

  Ctrl-C stops the run; terminal colours are reset on the way out.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from types import FrameType
from typing import IO, Any, BinaryIO, Callable, ClassVar, Union

import numpy as np
from numpy.typing import NDArray

from gol_core import (
    Workspace,
    encode,
    new_frame_buffer,
    select_tokens,
    step,
)

# ── Limits ──────────────────────────────────────────────────────────────
MIN_SIZE, MAX_SIZE = 1, 2000
MIN_FPS, MAX_FPS = 0, 4800
MAX_GENERATIONS = 50_000
LOG_EVERY = 10

# ── Terminal control ────────────────────────────────────────────────────
# cursor home, clear screen, full reset (drops scrollback)
CLEAR_CODE = b"\x1b[1;1H\x1b[2J\x1bc"
RESET_FONT_CODE = b"\x1b[0m"

SignalHandler = Union[Callable[[int, Union[FrameType, None]], Any], int, None]


# ═══════════════════════════════════════════════════════════════════════
#  Configuration
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RunConfig:
    height: int
    width: int
    max_fps: int = 0
    monochrome: bool = False
    generations: int = MAX_GENERATIONS
    seed: int | None = None
    stats_path: Path | None = None

    @property
    def frame_delay(self) -> float:
        """Seconds to sleep between generations (0 when uncapped)."""
        return 1.0 / self.max_fps if self.max_fps else 0.0

    @property
    def tokens(self) -> NDArray[np.uint8]:
        return select_tokens(self.monochrome)


def bounded_int(lo: int, hi: int | None = None) -> Callable[[str], int]:
    """argparse ``type=`` that accepts a base-10 int in ``[lo, hi]``."""
    span = f"between {lo} and {hi}" if hi is not None else f"of at least {lo}"

    def parse(text: str) -> int:
        try:
            value = int(text, 10)
        except ValueError:
            raise argparse.ArgumentTypeError(f"'{text}' is not an int {span}") from None
        if value < lo or (hi is not None and value > hi):
            raise argparse.ArgumentTypeError(f"expects an int {span}, got {value}")
        return value

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gol-color",
        description="Conway's Game of Life on a torus, drawn with ANSI colours.",
        epilog="Example: 'gol-color 25 50 5' => 25 tall, 50 wide, 5 max FPS",
    )
    parser.add_argument("height", type=bounded_int(MIN_SIZE, MAX_SIZE),
                        help=f"Grid rows ({MIN_SIZE}-{MAX_SIZE})")
    parser.add_argument("width", type=bounded_int(MIN_SIZE, MAX_SIZE),
                        help=f"Grid columns ({MIN_SIZE}-{MAX_SIZE})")
    parser.add_argument("max_fps", type=bounded_int(MIN_FPS, MAX_FPS),
                        help=f"Max generations per second ({MIN_FPS}-{MAX_FPS}, 0 = uncapped)")
    parser.add_argument("-bw", "--bw", dest="monochrome", action="store_true",
                        help="Disable the red/green change colours, black and white only")
    parser.add_argument("--generations", type=bounded_int(1), default=MAX_GENERATIONS,
                        help=f"Stop after this many frames (default: {MAX_GENERATIONS})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for the initial cells")
    parser.add_argument("--stats", type=Path, default=None,
                        help="Write per-generation telemetry CSV to this path")
    return parser


def parse_args(argv: list[str] | None = None) -> RunConfig:
    args = build_parser().parse_args(argv)
    return RunConfig(
        height=args.height,
        width=args.width,
        max_fps=args.max_fps,
        monochrome=args.monochrome,
        generations=args.generations,
        seed=args.seed,
        stats_path=args.stats,
    )


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes run telemetry to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,births,deaths\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    @property
    def active(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError as e:
            print(f"Warning: telemetry disabled, cannot write {self._path}: {e}",
                  file=sys.stderr)
            self._fh = None

    def log(self, gen: int, current: NDArray[np.uint8], previous: NDArray[np.uint8]) -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        pop = int(np.count_nonzero(current))
        births = int(np.count_nonzero(current > previous))
        deaths = int(np.count_nonzero(current < previous))
        self._fh.write(f"{gen},{t:.3f},{pop},{births},{deaths}\n")
        if gen % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Driver
# ═══════════════════════════════════════════════════════════════════════

def random_grid(height: int, width: int, rng: np.random.Generator) -> NDArray[np.uint8]:
    """``height * width`` independent fair coin flips as a flat uint8 grid."""
    return rng.integers(0, 2, size=height * width, dtype=np.uint8)


def install_interrupt_handler(cancel: threading.Event) -> SignalHandler:
    """Route SIGINT to ``cancel``; returns the handler it replaced."""

    def on_interrupt(signo: int, frame: FrameType | None) -> None:
        cancel.set()

    return signal.signal(signal.SIGINT, on_interrupt)


def draw_frame(out: BinaryIO, draw: NDArray[np.uint8], generation: int) -> None:
    out.write(CLEAR_CODE)
    out.write(memoryview(draw))
    out.write(RESET_FONT_CODE)
    out.write(f"gen: {generation}\n".encode("ascii"))
    out.flush()


def run(
    config: RunConfig,
    out: BinaryIO,
    cancel: threading.Event,
    sleep: Callable[[float], None] = time.sleep,
    logger: StatsLogger | None = None,
) -> int:
    """Draw generations until the cap is hit or ``cancel`` is set.

    Returns the number of frames drawn.
    """
    h, w = config.height, config.width
    tokens = config.tokens
    delay = config.frame_delay

    front = random_grid(h, w, np.random.default_rng(config.seed))
    back = front.copy()  # first frame shows no transitions
    draw = new_frame_buffer(h, w)
    work = Workspace.for_grid(h, w)

    gen = 0
    while gen < config.generations:
        if cancel.is_set():
            out.write(RESET_FONT_CODE)
            out.flush()
            break
        gen += 1

        encode(draw, front, back, h, w, tokens, work)
        draw_frame(out, draw, gen)
        if logger is not None and (gen == 1 or gen % LOG_EVERY == 0):
            logger.log(gen, front, back)

        front, back = back, front
        step(front, back, h, w, work)

        if delay:
            sleep(delay)

    return gen


def main(argv: list[str] | None = None) -> int:
    config = parse_args(argv)

    cancel = threading.Event()
    previous_handler = install_interrupt_handler(cancel)

    logger: StatsLogger | None = None
    if config.stats_path is not None:
        logger = StatsLogger(config.stats_path)
        logger.open()

    try:
        run(config, sys.stdout.buffer, cancel, logger=logger)
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
        if logger is not None:
            logger.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
