"""Numeric, text and image-overlay messages published through shared memory."""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass
from enum import IntEnum
from multiprocessing import shared_memory
from typing import Iterable, Sequence

from openrm.nms import Rect

NUM_KEY = "KeyNum_"
STR_KEY = "KeyStr_"
IMG_KEY = "KeyImg_"

NUM_LEN = 64
STR_LEN = 32
IMG_LEN = 16

NAME_MAX = 14
TEXT_MAX = 62
INFO_MAX = 30


def term_hash(text: str) -> int:
    """djb2 hash of the text, folded to a signed 32-bit integer."""
    value = 5381
    for byte in text.encode("utf-8"):
        value = (value * 33 + byte) & 0xFFFFFFFFFFFFFFFF
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >= 1 << 31 else value


def _cstr(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _clip(text: str, limit: int) -> bytes:
    return text.encode("utf-8")[:limit]


class MsgKind(IntEnum):
    """Severity of a text message."""

    NOTE = 0
    OK = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class NumMessage:
    """A named number; ``type`` is one of 'i', 'f', 'd', 'c'."""

    name: str
    type: str
    value: int | float | str

    SIZE = 24
    _FORMAT = "<15sc8s"

    def to_bytes(self) -> bytes:
        if self.type == "i":
            payload = struct.pack("<i", int(self.value))
        elif self.type == "f":
            payload = struct.pack("<f", float(self.value))
        elif self.type == "d":
            payload = struct.pack("<d", float(self.value))
        elif self.type == "c":
            payload = str(self.value).encode("latin-1")[:1]
        else:
            raise ValueError(f"unknown number type {self.type!r}")
        return struct.pack(self._FORMAT, _clip(self.name, NAME_MAX), self.type.encode(),
                           payload.ljust(8, b"\0"))

    @classmethod
    def from_bytes(cls, raw: bytes) -> NumMessage | None:
        name_b, type_b, payload = struct.unpack(cls._FORMAT, raw[:cls.SIZE])
        if name_b[0] == 0:
            return None
        kind = type_b.decode("latin-1")
        if kind == "i":
            value = struct.unpack("<i", payload[:4])[0]
        elif kind == "f":
            value = struct.unpack("<f", payload[:4])[0]
        elif kind == "d":
            value = struct.unpack("<d", payload)[0]
        else:
            value = payload[:1].decode("latin-1")
        return cls(_cstr(name_b), kind, value)


@dataclass(frozen=True)
class StrMessage:
    """A line of status text."""

    kind: MsgKind
    text: str

    SIZE = 64
    _FORMAT = "<B63s"

    def to_bytes(self) -> bytes:
        return struct.pack(self._FORMAT, int(self.kind), _clip(self.text, TEXT_MAX))

    @classmethod
    def from_bytes(cls, raw: bytes) -> StrMessage | None:
        kind, text = struct.unpack(cls._FORMAT, raw[:cls.SIZE])
        if text[0] == 0:
            return None
        return cls(MsgKind(kind), _cstr(text))


@dataclass(frozen=True)
class ImgMessage:
    """An overlay mark in normalised image coordinates; ``type`` is 'r', 'p' or 'x'."""

    info: str
    type: str
    rect: tuple[float, ...]

    SIZE = 64
    _FORMAT = "<31sc8f"

    def to_bytes(self) -> bytes:
        values = (tuple(float(v) for v in self.rect) + (0.0,) * 8)[:8]
        return struct.pack(self._FORMAT, _clip(self.info, INFO_MAX), self.type.encode(), *values)

    @classmethod
    def from_bytes(cls, raw: bytes) -> ImgMessage | None:
        info, type_b, *values = struct.unpack(cls._FORMAT, raw[:cls.SIZE])
        if type_b == b"\0":
            return None
        return cls(_cstr(info), type_b.decode("latin-1"), tuple(values))


class SharedRecords:
    """A fixed number of fixed-size records in a named shared-memory block."""

    def __init__(self, name: str, record_type, length: int, create: bool = True) -> None:
        self.name = name
        self.record_type = record_type
        self.length = length
        size = record_type.SIZE * length
        self._owner = False
        if create:
            try:
                self._shm = shared_memory.SharedMemory(name=name, create=True, size=size)
                self._owner = True
                self._shm.buf[:size] = bytes(size)
            except FileExistsError:
                self._shm = shared_memory.SharedMemory(name=name)
        else:
            self._shm = shared_memory.SharedMemory(name=name)
        if self._shm.size < size:
            self._shm.close()
            raise ValueError(f"shared memory {name!r} is smaller than {size} bytes")

    def read(self) -> list:
        """Records up to the first empty slot."""
        size = self.record_type.SIZE
        records = []
        for k in range(self.length):
            record = self.record_type.from_bytes(bytes(self._shm.buf[k * size:(k + 1) * size]))
            if record is None:
                break
            records.append(record)
        return records

    def write(self, records: Sequence) -> None:
        """Replace the contents; ``None`` entries leave a blank slot."""
        size = self.record_type.SIZE
        total = size * self.length
        self._shm.buf[:total] = bytes(total)
        for k, record in enumerate(list(records)[:self.length]):
            if record is not None:
                self._shm.buf[k * size:(k + 1) * size] = record.to_bytes()

    def close(self) -> None:
        self._shm.close()
        if self._owner:
            try:
                self._shm.unlink()
            except FileNotFoundError:
                pass


def _infer_type(value) -> str:
    if isinstance(value, str):
        if len(value) != 1:
            raise ValueError("character value must be a single character")
        return "c"
    if isinstance(value, int):
        return "i"
    if isinstance(value, float):
        return "d"
    raise TypeError(f"unsupported value {value!r}")


class MessageHub:
    """Collects messages from one process and publishes them on ``send``."""

    def __init__(self, unique_name: str, num_len: int = NUM_LEN,
                 str_len: int = STR_LEN, img_len: int = IMG_LEN) -> None:
        self.num_len, self.str_len, self.img_len = num_len, str_len, img_len
        self.numbers_shm = SharedRecords(NUM_KEY + unique_name, NumMessage, num_len)
        self.strings_shm = SharedRecords(STR_KEY + unique_name, StrMessage, str_len)
        self.images_shm = SharedRecords(IMG_KEY + unique_name, ImgMessage, img_len)
        self._numbers: dict[str, NumMessage] = {}
        self._strings: list[StrMessage | None] = [None] * str_len
        self._str_index = 0
        self._images: list[ImgMessage] = []

    def post_number(self, name: str, value, kind: str | None = None) -> None:
        kind = kind or _infer_type(value)
        if kind not in "ifdc" or len(kind) != 1:
            raise ValueError(f"unknown number type {kind!r}")
        truncated = _clip(name, NAME_MAX).decode("utf-8", errors="ignore")
        self._numbers[name] = NumMessage(truncated, kind, value)

    def post_text(self, text: str, kind: MsgKind = MsgKind.NOTE) -> None:
        print(text, file=sys.stderr if kind is MsgKind.ERROR else sys.stdout)
        self._str_index %= self.str_len
        self._strings[self._str_index] = StrMessage(kind, text)
        self._str_index += 1
        self._strings[self._str_index % self.str_len] = None

    def _add_image(self, message: ImgMessage) -> None:
        if len(self._images) < self.img_len:
            self._images.append(message)

    def post_rect(self, info: str, img_width: int, img_height: int, rect) -> None:
        x, y, w, h = (rect.x, rect.y, rect.width, rect.height) if isinstance(rect, Rect) else rect
        values = (y / img_height, (y + h) / img_height, x / img_width, (x + w) / img_width)
        self._add_image(ImgMessage(info, "r", values))

    def post_points(self, info: str, img_width: int, img_height: int,
                    points: Iterable[Sequence[float]]) -> None:
        points = list(points)
        if len(points) < 4:
            return
        values = []
        for px, py in (tuple(p[:2]) for p in points[:4]):
            values.extend((px / img_width, py / img_height))
        self._add_image(ImgMessage(info, "p", tuple(values)))

    def post_point(self, info: str, img_width: int, img_height: int, point) -> None:
        self._add_image(ImgMessage(info, "x", (point[0] / img_width, point[1] / img_height)))

    def send(self) -> None:
        """Publish numbers (sorted by name), text (newest first) and pending overlays."""
        self.numbers_shm.write([self._numbers[k] for k in sorted(self._numbers)])
        n = self.str_len
        self.strings_shm.write(
            [self._strings[(n + self._str_index - i - 1) % n] for i in range(n)]
        )
        self.images_shm.write(self._images)
        self._images = []

    def close(self) -> None:
        for records in (self.numbers_shm, self.strings_shm, self.images_shm):
            records.close()