"""Scrolling terminal plot of selected published numbers."""

from __future__ import annotations

import curses
import time
from typing import Sequence

from openrm.dashboard import put, term_init
from openrm.message import NUM_KEY, NUM_LEN, NumMessage, SharedRecords, term_hash

LEFT_MARGIN = 6
INITIAL_WIDTH = 100


def number_value(message: NumMessage | None) -> float:
    """Numeric value of a message; a missing message reads as zero."""
    if message is None:
        return 0.0
    if message.type == "c":
        return float(ord(str(message.value)[:1] or "\0"))
    return float(message.value)


class Waveform:
    """Ring buffers of recent values, one per plotted series."""

    def __init__(self, count: int, width: int = INITIAL_WIDTH) -> None:
        self.series = [[0.0] * width for _ in range(count)]
        self.width = width
        self.cursor = 0

    def push(self, values: Sequence[float], width: int) -> None:
        """Advance the cursor over a canvas of ``width`` columns and store one value per series."""
        if len(values) != len(self.series):
            raise ValueError(f"expected {len(self.series)} values, got {len(values)}")
        if width <= 0:
            raise ValueError("width must be positive")
        self.width = width
        self.cursor = (self.cursor + 1) % width
        for buffer, value in zip(self.series, values):
            if len(buffer) < width:
                buffer.extend([0.0] * (width - len(buffer)))
            buffer[self.cursor] = float(value)

    def bounds(self) -> tuple[float, float]:
        """Smallest and largest visible value."""
        if not self.series:
            return 0.0, 0.0
        low = high = self.series[0][0]
        for buffer in self.series:
            visible = buffer[:self.width]
            low, high = min(low, *visible), max(high, *visible)
        return low, high

    def plot_rows(self, height: int) -> list[tuple[int, int, int]]:
        """(row, column, colour pair) of every plotted sample; the column after the cursor is blank."""
        low, high = self.bounds()
        span = high - low
        points = []
        for i, buffer in enumerate(self.series):
            pair = (i % 4) + 5
            for j in range(self.width):
                if j == self.cursor + 1:
                    continue
                scaled = (buffer[j] - low) / span * height if span else 0.0
                points.append((int(height - scaled), j + LEFT_MARGIN, pair))
        return points


def _run(screen, key_names: list[str], msg_names: list[str]) -> None:
    term_init(screen)
    numbers = [SharedRecords(NUM_KEY + k, NumMessage, NUM_LEN) for k in key_names]
    hashes = [term_hash(n) for n in msg_names]
    wave = Waveform(len(msg_names))
    try:
        while screen.getch() != ord("q"):
            screen.erase()
            h, w = screen.getmaxyx()
            canvas_w, canvas_h = max(1, w - LEFT_MARGIN), h - 3
            found = {}
            for records in numbers:
                for message in records.read():
                    found.setdefault(term_hash(message.name), message)
            wave.push([number_value(found.get(key)) for key in hashes], canvas_w)
            low, high = wave.bounds()
            for y in range(h - 1):
                put(screen, y, 5, "|")
            for x in range(LEFT_MARGIN, w):
                put(screen, h - 2, x, "_")
            for x in range(LEFT_MARGIN, w, 10):
                put(screen, h - 1, x, "|")
            for y in range(h - 2):
                put(screen, y, wave.cursor + 7, "|")
            if canvas_h > 0:
                for y in range(0, canvas_h, 5):
                    put(screen, y, 0, f"{high - (high - low) / canvas_h * y:.6f}"[:5])
                for y, x, pair in wave.plot_rows(canvas_h):
                    put(screen, y, x, "*", pair)
            screen.refresh()
            time.sleep(0.02)
    finally:
        for records in numbers:
            records.close()


def oscilloscope(key_names, msg_names) -> None:
    """Plot the named numbers from the given hubs until 'q' is pressed."""
    curses.wrapper(_run, list(key_names), list(msg_names))