"""Terminal view of image overlay marks published by message hubs."""

from __future__ import annotations

import curses
import math
import time

from openrm.dashboard import put, term_init
from openrm.message import IMG_KEY, IMG_LEN, ImgMessage, SharedRecords


def _round(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def image_marks(message: ImgMessage, rows: int, cols: int) -> list[tuple[int, int, str, int]]:
    """Draw operations (row, column, text, colour pair) for one overlay mark."""
    r = message.rect
    marks: list[tuple[int, int, str, int]] = []
    if message.type == "r":
        up = _round(r[0] * rows) - 1
        down = _round(r[1] * rows) + 1
        left = _round(r[2] * cols) - 3
        right = _round(r[3] * cols) + 3
        for y in range(up, down + 1):
            marks.append((y, left, "|", 0))
            marks.append((y, right, "|", 0))
        for x in range(left, right + 1):
            marks.append((up, x, "-", 0))
            marks.append((down, x, "-", 0))
        marks.append((up - 1, left, message.info, 0))
    elif message.type == "p":
        str_x, str_y = cols, 0
        for i in range(4):
            x = _round(r[2 * i] * cols)
            y = _round(r[2 * i + 1] * rows)
            str_x, str_y = min(str_x, x), max(str_y, y)
            marks.append((y, x, "O", 5))
        marks.append((str_y + 3, str_x, message.info, 5))
    elif message.type == "x":
        marks.append((_round(r[1] * rows), _round(r[0] * cols), "X", 6))
        marks.append((2, 2, message.info, 6))
    return marks


def _run(screen, key_names: list[str]) -> None:
    term_init(screen)
    images = [SharedRecords(IMG_KEY + k, ImgMessage, IMG_LEN) for k in key_names]
    try:
        while screen.getch() != ord("q"):
            time.sleep(0.03)
            screen.erase()
            rows, cols = screen.getmaxyx()
            for records in images:
                for message in records.read():
                    for y, x, text, pair in image_marks(message, rows, cols):
                        put(screen, y, x, text, pair)
            screen.refresh()
    finally:
        for records in images:
            records.close()


def monitor(key_names) -> None:
    """Show overlay marks for the given hubs until 'q' is pressed."""
    curses.wrapper(_run, list(key_names))