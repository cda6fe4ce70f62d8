"""Terminal table of the numbers and status lines published by message hubs."""

from __future__ import annotations

import curses
import time
from typing import Iterable

from openrm.message import (
    NUM_KEY,
    NUM_LEN,
    STR_KEY,
    STR_LEN,
    MsgKind,
    NumMessage,
    SharedRecords,
    StrMessage,
    term_hash,
)

COLUMN_WIDTH = 25
VALUE_OFFSET = 16
VALUE_WIDTH = 8

_KIND_PAIRS = {MsgKind.NOTE: 8, MsgKind.OK: 2, MsgKind.WARNING: 4, MsgKind.ERROR: 1}


def format_number(message: NumMessage) -> str:
    """Value text, at most eight characters."""
    if message.type == "i":
        text = str(int(message.value))
    elif message.type in ("f", "d"):
        text = f"{float(message.value):.6f}"
    elif message.type == "c":
        text = str(message.value)
    else:
        text = ""
    return text[:VALUE_WIDTH]


def dashboard_layout(numbers: Iterable[NumMessage], rows: int) -> list[tuple[int, int, str, str]]:
    """(row, column, name, value text) for each number, ordered by name hash."""
    if rows <= 0:
        raise ValueError("rows must be positive")
    by_hash = {term_hash(m.name): m for m in numbers}
    layout = []
    for index, key in enumerate(sorted(by_hash)):
        message = by_hash[key]
        layout.append((index % rows, (index // rows) * COLUMN_WIDTH, message.name,
                       format_number(message)))
    return layout


def term_init(screen) -> None:
    """Configure the curses screen and the colour pairs used by the viewers."""
    curses.cbreak()
    curses.noecho()
    screen.nodelay(True)
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    curses.start_color()
    pairs = [
        (curses.COLOR_WHITE, curses.COLOR_RED),
        (curses.COLOR_WHITE, curses.COLOR_GREEN),
        (curses.COLOR_WHITE, curses.COLOR_BLUE),
        (curses.COLOR_WHITE, curses.COLOR_YELLOW),
        (curses.COLOR_GREEN, curses.COLOR_BLACK),
        (curses.COLOR_YELLOW, curses.COLOR_BLACK),
        (curses.COLOR_RED, curses.COLOR_BLACK),
        (curses.COLOR_BLUE, curses.COLOR_BLACK),
    ]
    for number, (fg, bg) in enumerate(pairs, start=1):
        curses.init_pair(number, fg, bg)


def put(screen, y: int, x: int, text: str, pair: int = 0) -> None:
    """Write text, ignoring anything that falls off the screen."""
    try:
        screen.addstr(y, x, text, curses.color_pair(pair) if pair else 0)
    except curses.error:
        pass


def _run(screen, key_names: list[str]) -> None:
    term_init(screen)
    numbers = [SharedRecords(NUM_KEY + k, NumMessage, NUM_LEN) for k in key_names]
    strings = [SharedRecords(STR_KEY + k, StrMessage, STR_LEN) for k in key_names]
    seen: dict[str, NumMessage] = {}
    try:
        while screen.getch() != ord("q"):
            time.sleep(0.05)
            for records in numbers:
                for message in records.read():
                    seen[message.name] = message
            screen.erase()
            rows, cols = screen.getmaxyx()
            for y, x, name, value in dashboard_layout(seen.values(), rows):
                put(screen, y, x, name)
                put(screen, y, x + VALUE_OFFSET, value, 8)
            for records in strings:
                for j, message in enumerate(records.read()):
                    put(screen, j, cols - len(message.text) - 1, message.text,
                        _KIND_PAIRS[message.kind])
            screen.refresh()
    finally:
        for records in numbers + strings:
            records.close()


def dashboard(key_names) -> None:
    """Show the dashboard for the given hubs until 'q' is pressed."""
    curses.wrapper(_run, list(key_names))