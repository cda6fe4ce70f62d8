import numpy as np
import pytest

from openrm.nms import (
    Letterbox,
    Rect,
    YoloRect,
    calc_iou,
    suppress,
    yolo_armor_nms_fp,
    yolo_armor_nms_fpx,
    yolo_armor_nms_v5,
)

SQUARE_POSE = [100, 100, 100, 200, 200, 200, 200, 100]


def fp_row(pose, conf, classes, colors=None):
    row = list(pose) + [conf]
    if colors is not None:
        row += list(colors) + [0.0] * (4 - len(colors))
    return row + list(classes)


def run_fp(rows, classes_num, func=yolo_armor_nms_fp):
    buffer = np.array(rows, dtype=np.float32).ravel()
    return func(buffer, len(rows), classes_num, 0.5, 0.3, 640, 640, 640, 640)


def test_identity_letterbox_keeps_coordinates():
    lb = Letterbox.from_sizes(640, 640, 640, 640)
    assert lb.ratio == 1.0
    assert lb.left == 0.0 and lb.top == 0.0
    assert lb.rect_from_box([150, 150, 100, 100]) == Rect(100, 100, 100, 100)


def test_letterbox_maps_centre_to_centre():
    lb = Letterbox.from_sizes(1280, 1024, 640, 640)
    rect = lb.rect_from_box([320, 320, 0, 0])
    assert (rect.x, rect.y) == (1280 // 2, 1024 // 2)
    lb2 = Letterbox.from_sizes(1024, 1280, 640, 640)
    rect2 = lb2.rect_from_box([320, 320, 0, 0])
    assert (rect2.x, rect2.y) == (1024 // 2, 1280 // 2)


def test_letterbox_rejects_zero_size():
    with pytest.raises(ValueError):
        Letterbox.from_sizes(640, 480, 0, 640)


def test_rect_from_points_and_four_points_order():
    lb = Letterbox.from_sizes(640, 640, 640, 640)
    assert lb.rect_from_points(SQUARE_POSE) == Rect(100, 100, 100, 100)
    assert lb.four_points(SQUARE_POSE) == [(100, 100), (200, 100), (100, 200), (200, 200)]


def test_four_points_outside_image_is_empty():
    lb = Letterbox.from_sizes(640, 640, 640, 640)
    pose = [100, 100, 100, 700, 200, 200, 200, 100]
    assert lb.four_points(pose) == []


def test_calc_iou_disjoint_and_symmetric():
    a = Rect(0, 0, 10, 10)
    b = Rect(100, 100, 10, 10)
    c = Rect(5, 5, 10, 10)
    assert calc_iou(a, b) == 0.0
    assert calc_iou(a, c) == pytest.approx(calc_iou(c, a))
    assert 0.0 < calc_iou(a, c) < calc_iou(a, a)


def test_suppress_drops_overlap_keeps_disjoint():
    first = YoloRect(Rect(0, 0, 50, 50), 0.9, 0)
    overlap = YoloRect(Rect(2, 2, 50, 50), 0.8, 0)
    far = YoloRect(Rect(300, 300, 50, 50), 0.7, 1)
    kept = suppress([first, overlap, far], 0.3)
    assert kept == [first, far]
    assert suppress([], 0.3) == []


def test_fp_selects_best_class_and_points():
    result = run_fp([fp_row(SQUARE_POSE, 0.9, [0.1, 0.8])], 2)
    assert len(result) == 1
    det = result[0]
    assert det.class_id == 1
    assert det.confidence == pytest.approx(0.9 * 0.8, rel=1e-5)
    assert det.box == Rect(100, 100, 100, 100)
    assert det.four_points == [(100, 100), (200, 100), (100, 200), (200, 200)]


def test_fp_filters_low_confidence_edges_and_duplicates():
    shifted = [v + 2 for v in SQUARE_POSE]
    far = [400, 400, 400, 450, 450, 450, 450, 400]
    edge = [0, 100, 0, 200, 100, 200, 100, 100]
    rows = [
        fp_row(shifted, 0.8, [0.9, 0.0]),
        fp_row(SQUARE_POSE, 0.95, [0.9, 0.0]),
        fp_row(far, 0.3, [0.9, 0.0]),
        fp_row(edge, 0.95, [0.9, 0.0]),
    ]
    result = run_fp(rows, 2)
    assert len(result) == 1
    assert result[0].box == Rect(100, 100, 100, 100)


def test_fp_results_sorted_by_confidence():
    far = [400, 400, 400, 450, 450, 450, 450, 400]
    rows = [fp_row(SQUARE_POSE, 0.7, [1.0]), fp_row(far, 0.9, [1.0])]
    buffer = np.array(rows, dtype=np.float32).ravel()
    result = yolo_armor_nms_fp(buffer, 2, 1, 0.5, 0.3, 640, 640, 640, 640)
    confidences = [d.confidence for d in result]
    assert len(result) == 2
    assert confidences == sorted(confidences, reverse=True)
    assert result[0].box == Rect(400, 400, 50, 50)


def test_fpx_reads_colour_and_class():
    row = fp_row(SQUARE_POSE, 0.9, [0.0, 0.0, 0.95], colors=[0.1, 0.9, 0.2])
    buffer = np.array([row], dtype=np.float32).ravel()
    result = yolo_armor_nms_fpx(buffer, 1, 3, 0.5, 0.3, 640, 640, 640, 640)
    assert len(result) == 1
    assert result[0].color_id == 1
    assert result[0].class_id == 2


def test_fpx_without_colour_is_dropped():
    row = fp_row(SQUARE_POSE, 0.9, [0.95], colors=[0.1, 0.1, 0.1])
    buffer = np.array([row], dtype=np.float32).ravel()
    result = yolo_armor_nms_fpx(buffer, 1, 1, 0.5, 0.3, 640, 640, 640, 640)
    assert result == []


def test_v5_boxes():
    rows = [
        [150, 150, 100, 100, 0.9, 0.2, 0.9],
        [152, 152, 100, 100, 0.8, 0.2, 0.9],
        [500, 500, 40, 40, 0.9, 0.9, 0.1],
    ]
    buffer = np.array(rows, dtype=np.float32)
    result = yolo_armor_nms_v5(buffer, 3, 2, 0.5, 0.3, 640, 640, 640, 640)
    assert [d.box for d in result] == [Rect(100, 100, 100, 100), Rect(480, 480, 40, 40)]
    assert [d.class_id for d in result] == [1, 0]


def test_short_buffer_raises():
    with pytest.raises(ValueError):
        yolo_armor_nms_v5([0.0] * 10, 3, 2, 0.5, 0.3, 640, 640, 640, 640)