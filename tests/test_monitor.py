from openrm.message import ImgMessage
from openrm.monitor import image_marks


def test_rect_frame_encloses_box():
    msg = ImgMessage("car", "r", (0.2, 0.6, 0.25, 0.75, 0, 0, 0, 0))
    marks = image_marks(msg, rows=10, cols=20)
    frame = [m for m in marks if m[2] in "|-"]
    ys = [m[0] for m in frame]
    xs = [m[1] for m in frame]
    assert (min(ys), max(ys), min(xs), max(xs)) == (1, 7, 2, 18)
    assert marks[-1] == (min(ys) - 1, min(xs), "car", 0)


def test_points_draw_four_circles_and_label():
    msg = ImgMessage("pt", "p", (0.1, 0.1, 0.1, 0.5, 0.5, 0.5, 0.5, 0.1))
    marks = image_marks(msg, rows=10, cols=10)
    circles = [m for m in marks if m[2] == "O"]
    assert len(circles) == 4
    label = marks[-1]
    assert label[2] == "pt"
    assert label[0] == max(c[0] for c in circles) + 3
    assert label[1] == min(c[1] for c in circles)


def test_cross_mark():
    msg = ImgMessage("aim", "x", (0.5, 0.5, 0, 0, 0, 0, 0, 0))
    assert image_marks(msg, rows=20, cols=40) == [(10, 20, "X", 6), (2, 2, "aim", 6)]


def test_unknown_type_draws_nothing():
    assert image_marks(ImgMessage("?", "z", (0,) * 8), 10, 10) == []