"""Confidence filtering and non-maximum suppression for YOLO armour detections."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np

POSE_LEN = 8
EDGE_MARGIN = 1e-3
EDGE_LIMIT = 1.001
COLOR_SLOTS = 4
COLOR_CHOICES = 3

# Order in which the network's corners (TL, BL, BR, TR) are emitted as points.
_X_INDEX = (0, 6, 2, 4)
_Y_INDEX = (1, 7, 3, 5)


def _round(value: float) -> int:
    """Round half away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned integer rectangle."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass
class YoloRect:
    """One detection kept after filtering."""

    box: Rect
    confidence: float
    class_id: int
    color_id: int = -1
    four_points: list[tuple[float, float]] = field(default_factory=list)


@dataclass(frozen=True)
class Letterbox:
    """Mapping from inference-image coordinates back to the input image."""

    ratio: float
    left: float
    top: float
    input_width: int
    input_height: int
    infer_width: int
    infer_height: int

    @classmethod
    def from_sizes(cls, input_width, input_height, infer_width, infer_height):
        if infer_width <= 0 or infer_height <= 0:
            raise ValueError("inference size must be positive")
        width_ratio = input_width / infer_width
        height_ratio = input_height / infer_height
        top = (infer_height * width_ratio - input_height) / 2.0
        left = (infer_width * height_ratio - input_width) / 2.0
        if width_ratio > height_ratio:
            ratio, left = width_ratio, 0.0
        else:
            ratio, top = height_ratio, 0.0
        return cls(ratio, left, top, input_width, input_height, infer_width, infer_height)

    def _x(self, value: float) -> float:
        return float(value) * self.ratio - self.left

    def _y(self, value: float) -> float:
        return float(value) * self.ratio - self.top

    def rect_from_points(self, pose: Sequence[float]) -> Rect:
        """Bounding rectangle of four corner points, in input coordinates."""
        xs = [float(v) for v in pose[0:POSE_LEN:2]]
        ys = [float(v) for v in pose[1:POSE_LEN:2]]
        min_x, max_x = min(xs), max(xs)
        min_y, max_y = min(ys), max(ys)
        return Rect(
            _round(self._x(min_x)),
            _round(self._y(min_y)),
            _round((max_x - min_x) * self.ratio),
            _round((max_y - min_y) * self.ratio),
        )

    def rect_from_box(self, bbox: Sequence[float]) -> Rect:
        """Rectangle from a centre/size box, in input coordinates."""
        cx, cy, w, h = (float(v) for v in bbox[:4])
        left = self._x(cx - w / 2.0)
        top = self._y(cy - h / 2.0)
        right = self._x(cx + w / 2.0)
        bottom = self._y(cy + h / 2.0)
        return Rect(_round(left), _round(top), _round(right - left), _round(bottom - top))

    def four_points(self, pose: Sequence[float]) -> list[tuple[float, float]]:
        """Corner points in input coordinates; empty if any falls outside the image."""
        points = []
        for xi, yi in zip(_X_INDEX, _Y_INDEX):
            x = self._x(pose[xi])
            y = self._y(pose[yi])
            if x < 0 or x >= self.input_width or y < 0 or y >= self.input_height:
                return []
            points.append((x, y))
        return points

    def pose_inside(self, pose: Sequence[float]) -> bool:
        """True if no corner lies on or beyond the inference image border."""
        x_limit = self.infer_width - EDGE_LIMIT
        y_limit = self.infer_height - EDGE_LIMIT
        return all(
            EDGE_MARGIN <= pose[2 * i] <= x_limit and EDGE_MARGIN <= pose[2 * i + 1] <= y_limit
            for i in range(4)
        )


def calc_iou(box1: Rect, box2: Rect) -> float:
    """Intersection over union, with inclusive pixel edges on the overlap."""
    x1 = max(box1.x, box2.x)
    y1 = max(box1.y, box2.y)
    x2 = min(box1.x + box1.width, box2.x + box2.width)
    y2 = min(box1.y + box1.height, box2.y + box2.height)
    w = max(0, x2 - x1 + 1)
    h = max(0, y2 - y1 + 1)
    over_area = float(w * h)
    union_area = box1.area + box2.area - over_area + 1e-5
    return over_area / union_area


def suppress(detections: Iterable[YoloRect], nms_threshold: float) -> list[YoloRect]:
    """Greedy suppression in the given order; earlier detections take priority."""
    retained: list[YoloRect] = []
    for detection in detections:
        if all(calc_iou(detection.box, kept.box) <= nms_threshold for kept in retained):
            retained.append(detection)
    return retained


def sort_by_confidence(detections: Iterable[YoloRect]) -> list[YoloRect]:
    return sorted(detections, key=lambda d: d.confidence, reverse=True)


def rows_of(output, bboxes_num: int, row_len: int) -> np.ndarray:
    """View the raw output buffer as one row of floats per candidate box."""
    if bboxes_num < 0:
        raise ValueError("bboxes_num must not be negative")
    data = np.asarray(output, dtype=np.float32).ravel()
    needed = bboxes_num * row_len
    if data.size < needed:
        raise ValueError(f"output holds {data.size} floats, {needed} needed")
    return data[:needed].reshape(bboxes_num, row_len)


def best_score(scores: np.ndarray, threshold: float) -> tuple[int, float] | None:
    """First index of the highest score that is above both zero and the threshold."""
    mask = (scores > threshold) & (scores > 0)
    if not mask.any():
        return None
    index = int(np.argmax(np.where(mask, scores, -np.inf)))
    return index, float(scores[index])


def _select_points(rows, classes_num, threshold, letterbox, with_color):
    class_start = POSE_LEN + 1 + (COLOR_SLOTS if with_color else 0)
    for row in rows:
        objectness = row[POSE_LEN]
        if objectness < threshold:
            continue
        color_id = -1
        if with_color:
            color = best_score(row[POSE_LEN + 1:POSE_LEN + 1 + COLOR_CHOICES] * objectness, threshold)
            if color is None:
                continue
            color_id = color[0]
        best = best_score(row[class_start:class_start + classes_num] * objectness, threshold)
        if best is None:
            continue
        pose = row[:POSE_LEN]
        if not letterbox.pose_inside(pose):
            continue
        points = letterbox.four_points(pose)
        if len(points) != 4:
            continue
        yield YoloRect(
            box=letterbox.rect_from_points(pose),
            confidence=best[1],
            class_id=best[0],
            color_id=color_id,
            four_points=points,
        )


def _select_box(rows, classes_num, threshold, letterbox):
    for row in rows:
        objectness = row[4]
        if objectness < threshold:
            continue
        best = best_score(row[5:5 + classes_num] * objectness, threshold)
        if best is None:
            continue
        yield YoloRect(
            box=letterbox.rect_from_box(row[:4]),
            confidence=best[1],
            class_id=best[0],
        )


def yolo_armor_nms_fp(output, bboxes_num, classes_num, confidence_threshold, nms_threshold,
                      input_width, input_height, infer_width, infer_height):
    """Filter four-point detections (8 pose + 1 confidence + classes per row)."""
    letterbox = Letterbox.from_sizes(input_width, input_height, infer_width, infer_height)
    rows = rows_of(output, bboxes_num, POSE_LEN + 1 + classes_num)
    found = _select_points(rows, classes_num, confidence_threshold, letterbox, with_color=False)
    return suppress(sort_by_confidence(found), nms_threshold)


def yolo_armor_nms_v5(output, bboxes_num, classes_num, confidence_threshold, nms_threshold,
                      input_width, input_height, infer_width, infer_height):
    """Filter box detections (4 box + 1 confidence + classes per row)."""
    letterbox = Letterbox.from_sizes(input_width, input_height, infer_width, infer_height)
    rows = rows_of(output, bboxes_num, 5 + classes_num)
    found = _select_box(rows, classes_num, confidence_threshold, letterbox)
    return suppress(sort_by_confidence(found), nms_threshold)


def yolo_armor_nms_fpx(output, bboxes_num, classes_num, confidence_threshold, nms_threshold,
                       input_width, input_height, infer_width, infer_height):
    """Filter four-point detections with colour (8 pose + 1 + 4 colour + classes per row)."""
    letterbox = Letterbox.from_sizes(input_width, input_height, infer_width, infer_height)
    rows = rows_of(output, bboxes_num, POSE_LEN + 1 + COLOR_SLOTS + classes_num)
    found = _select_points(rows, classes_num, confidence_threshold, letterbox, with_color=True)
    return suppress(sort_by_confidence(found), nms_threshold)