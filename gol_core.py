"""
Toroidal Game of Life stepper and ANSI frame encoder.

Grids are flat, row-major ``uint8`` arrays of ``height * width`` cells
(0 = dead, 1 = alive).  A frame buffer is a flat ``uint8`` array of
``height * (width + 1)`` six-byte units::

    ESC [ d d m SPACE      one per cell
    ESC [ 0 0 m NEWLINE    one per row end

The scaffolding is written once by ``new_frame_buffer``; after that only the
two ``d d`` digit bytes of each cell unit are rewritten, by ``encode``.
Neither ``step`` nor ``encode`` allocates when handed a ``Workspace``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# ── Grid ────────────────────────────────────────────────────────────────
GRID_DTYPE = np.uint8

# 3×3 window summed around every cell, the cell itself included
WINDOW_KERNEL: NDArray = np.ones((3, 3), dtype=np.int16)

# ── Frame layout ────────────────────────────────────────────────────────
UNIT_BYTES: int = 6
CELL_UNIT: bytes = b"\x1b[00m "
ROW_END_UNIT: bytes = b"\x1b[00m\n"
CODE_SLOT = slice(2, 4)

# ── Token tables ────────────────────────────────────────────────────────
# Row k = (previous << 1) | current holds the two ASCII digits of the
# background colour:  dead→dead, dead→live, live→dead, live→live
COLOR_TOKENS: NDArray[np.uint8] = np.frombuffer(b"40424147", dtype=np.uint8).reshape(4, 2)
MONO_TOKENS: NDArray[np.uint8] = np.frombuffer(b"40474047", dtype=np.uint8).reshape(4, 2)


class GridError(ValueError):
    """A caller handed the core a buffer or size it cannot work with."""


def select_tokens(monochrome: bool) -> NDArray[np.uint8]:
    return MONO_TOKENS if monochrome else COLOR_TOKENS


# ═══════════════════════════════════════════════════════════════════════
#  Buffers
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Workspace:
    """Scratch arrays reused by every ``step``/``encode`` call of a run."""

    counts: NDArray[np.int16]
    mask: NDArray[np.bool_]
    keys: NDArray[np.uint8]
    codes: NDArray[np.uint8]

    @classmethod
    def for_grid(cls, height: int, width: int) -> Workspace:
        check_dimensions(height, width)
        return cls(
            counts=np.empty((height, width), dtype=np.int16),
            mask=np.empty((height, width), dtype=np.bool_),
            keys=np.empty((height, width), dtype=np.uint8),
            codes=np.empty((height, width, 2), dtype=np.uint8),
        )

    @property
    def shape(self) -> tuple[int, int]:
        return self.counts.shape  # type: ignore[return-value]


def new_grid(height: int, width: int) -> NDArray[np.uint8]:
    check_dimensions(height, width)
    return np.zeros(height * width, dtype=GRID_DTYPE)


def new_frame_buffer(height: int, width: int) -> NDArray[np.uint8]:
    """Allocate a frame buffer and write its constant scaffolding.

    Every unit starts with the placeholder code ``00``.
    """
    check_dimensions(height, width)
    units = np.empty((height, width + 1, UNIT_BYTES), dtype=np.uint8)
    units[:, :width] = np.frombuffer(CELL_UNIT, dtype=np.uint8)
    units[:, width] = np.frombuffer(ROW_END_UNIT, dtype=np.uint8)
    return units.reshape(-1)


def frame_units(draw: NDArray[np.uint8], height: int, width: int) -> NDArray[np.uint8]:
    """View a flat frame buffer as ``(height, width + 1, UNIT_BYTES)``."""
    _check_buffer(draw, height * (width + 1) * UNIT_BYTES, "draw")
    return draw.reshape(height, width + 1, UNIT_BYTES)


# ── Preconditions ──────────────────────────────────────────────────────

def check_dimensions(height: int, width: int) -> None:
    for name, value in (("height", height), ("width", width)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise GridError(f"{name} must be an int, got {type(value).__name__}")
        if value < 1:
            raise GridError(f"{name} must be positive, got {value}")


def _check_buffer(buf: NDArray, size: int, name: str) -> None:
    if not isinstance(buf, np.ndarray):
        raise GridError(f"{name} must be a numpy array")
    if buf.dtype != np.uint8 or buf.ndim != 1 or not buf.flags.c_contiguous:
        raise GridError(f"{name} must be a flat contiguous uint8 array")
    if buf.size != size:
        raise GridError(f"{name} holds {buf.size} bytes, expected {size}")


def _workspace(work: Workspace | None, height: int, width: int) -> Workspace:
    if work is None:
        return Workspace.for_grid(height, width)
    if work.shape != (height, width):
        raise GridError(f"workspace is sized {work.shape}, grid is {(height, width)}")
    return work


# ═══════════════════════════════════════════════════════════════════════
#  Simulation
# ═══════════════════════════════════════════════════════════════════════

def step(
    dst: NDArray[np.uint8],
    src: NDArray[np.uint8],
    height: int,
    width: int,
    work: Workspace | None = None,
) -> None:
    """Write the generation after ``src`` into ``dst``.

    ``c`` is the live count of the 3×3 window around a cell, the cell itself
    included, wrapping on both axes.  The cell lives iff ``c == 3``, or
    ``c == 4`` and it is alive already.
    """
    check_dimensions(height, width)
    _check_buffer(src, height * width, "src")
    _check_buffer(dst, height * width, "dst")
    if np.may_share_memory(dst, src):
        raise GridError("dst and src must not share memory")
    work = _workspace(work, height, width)

    alive = src.reshape(height, width).view(np.bool_)
    born = dst.reshape(height, width).view(np.bool_)

    convolve(src.reshape(height, width), WINDOW_KERNEL, output=work.counts, mode="wrap")
    np.equal(work.counts, 3, out=born)
    np.equal(work.counts, 4, out=work.mask)
    np.logical_and(work.mask, alive, out=work.mask)
    np.logical_or(born, work.mask, out=born)


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def encode(
    draw: NDArray[np.uint8],
    current: NDArray[np.uint8],
    previous: NDArray[np.uint8],
    height: int,
    width: int,
    tokens: NDArray[np.uint8],
    work: Workspace | None = None,
) -> None:
    """Rewrite the colour code of every cell unit in ``draw``.

    Cell ``i`` gets ``tokens[(previous[i] << 1) | current[i]]``.  Escape
    prefixes, the ``m``/space suffixes and row terminators are left alone.
    """
    check_dimensions(height, width)
    units = frame_units(draw, height, width)
    _check_buffer(current, height * width, "current")
    _check_buffer(previous, height * width, "previous")
    if not isinstance(tokens, np.ndarray) or tokens.dtype != np.uint8:
        raise GridError("token table must be a uint8 numpy array")
    if tokens.shape != (4, 2):
        raise GridError(f"token table must have shape (4, 2), got {tokens.shape}")
    work = _workspace(work, height, width)

    keys = work.keys
    np.left_shift(previous.reshape(height, width), 1, out=keys)
    np.bitwise_or(keys, current.reshape(height, width), out=keys)
    # keys never leave 0..3, so clipping changes nothing
    np.take(tokens, keys, axis=0, out=work.codes, mode="clip")
    units[:, :width, CODE_SLOT] = work.codes
