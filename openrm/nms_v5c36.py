"""Per-class and cross-class suppression for the 36-class box detector."""

from __future__ import annotations

from openrm.nms import (
    Letterbox,
    YoloRect,
    best_score,
    calc_iou,
    rows_of,
    sort_by_confidence,
    suppress,
)

MAX_CLASSES = 36
ROW_LEN = 4 + 1 + MAX_CLASSES
MAX_PER_CLASS = 4


def _merge_classes(per_class: list[list[YoloRect]], nms_threshold: float) -> list[YoloRect]:
    result: list[YoloRect] = []
    for detections in per_class:
        if not detections or len(detections) > MAX_PER_CLASS:
            continue
        for focus in detections:
            available = True
            for index, kept in enumerate(result):
                if kept.class_id == focus.class_id:
                    continue
                if calc_iou(focus.box, kept.box) > nms_threshold:
                    if focus.confidence > kept.confidence:
                        result[index] = focus
                    available = False
                    break
            if available:
                result.append(focus)
    return result


def yolo_armor_nms_v5c36(output, bboxes_num, classes_num, confidence_threshold, nms_threshold,
                         input_width, input_height, infer_width, infer_height):
    """Filter rows of 41 floats (4 box + 1 confidence + 36 classes)."""
    if not 0 <= classes_num <= MAX_CLASSES:
        raise ValueError(f"classes_num must be between 0 and {MAX_CLASSES}")
    letterbox = Letterbox.from_sizes(input_width, input_height, infer_width, infer_height)
    rows = rows_of(output, bboxes_num, ROW_LEN)

    per_class: list[list[YoloRect]] = [[] for _ in range(classes_num)]
    for row in rows:
        objectness = float(row[4])
        if objectness < confidence_threshold:
            continue
        best = best_score(row[5:5 + classes_num], confidence_threshold)
        if best is None:
            continue
        class_id = best[0]
        per_class[class_id].append(
            YoloRect(box=letterbox.rect_from_box(row[:4]), confidence=objectness, class_id=class_id)
        )

    per_class = [suppress(sort_by_confidence(group), nms_threshold) for group in per_class]
    return _merge_classes(per_class, nms_threshold)