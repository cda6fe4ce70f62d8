# openrm

Building blocks for a robot-vision pipeline that detects armor plates and
aims at them:

- **Detection post-processing** (`openrm.nms`, `openrm.nms_v5c36`): turn raw
  YOLO output arrays into detections. The package filters candidates by
  confidence, maps boxes from the letterboxed inference size back to the
  camera image, and runs non-maximum suppression.
- **Yaw refinement** (`openrm.yawpnp`): refine an armor plate's yaw by
  projecting a fixed-pitch plate model into the image and searching for the
  yaw offset with the lowest cost.
- **Polynomial surface fitting** (`openrm.polynomial`): least-squares fit of
  `z = f(x, y)` with a two-variable polynomial, prediction and R².
- **Terminal telemetry** (`openrm.message`, `openrm.dashboard`,
  `openrm.monitor`, `openrm.oscilloscope`): publish numbers, status lines and
  image overlay marks through named shared memory, and view them in curses
  screens from another process.

Python 3.10 or later is needed; the only dependency is NumPy. The telemetry
viewers use the standard `curses` module and so need a POSIX terminal.

## Detection post-processing

A network's output is a flat float array with one record per candidate box.
Each function takes the array, the record count, the class count, the
confidence and NMS thresholds, the camera image size and the inference size,
and returns a list of `YoloRect` detections with boxes in camera-image
pixels. A `ValueError` is raised if the array holds fewer floats than the
records need.

```python
import numpy as np
from openrm.nms import yolo_armor_nms_v5

# one candidate: centre (320, 320), 64x32, objectness 0.9, two classes
output = np.array([320, 320, 64, 32, 0.9, 0.1, 0.95], dtype=np.float32)

detections = yolo_armor_nms_v5(
    output,
    1,      # bboxes_num
    2,      # classes_num
    0.5,    # confidence_threshold
    0.45,   # nms_threshold
    1280,   # input_width
    1024,   # input_height
    640,    # infer_width
    640,    # infer_height
)
for det in detections:
    print(det.class_id, det.confidence, det.box)
```

Record layouts:

- `yolo_armor_nms_v5`: 4 box values (centre and size), objectness, class
  scores. The confidence of a detection is objectness times its best class
  score.
- `yolo_armor_nms_fp`: 8 corner coordinates, objectness, class scores.
  Candidates with a corner at the inference image border, or a corner that
  maps outside the camera image, are dropped. `four_points` holds the
  corners in camera-image coordinates.
- `yolo_armor_nms_fpx`: like `fp`, followed by 4 colour slots (the first 3
  are scored; the best goes to `color_id`) before the class scores.
- `yolo_armor_nms_v5c36`: records of 41 floats (box, objectness, 36 class
  scores). Detections are suppressed within each class, classes with more
  than four survivors are dropped, and overlapping boxes of different classes
  keep the one with the higher objectness.

The first three return detections in falling order of confidence. The
pieces are public too: `Letterbox.from_sizes` builds the coordinate mapping
(`rect_from_box`, `rect_from_points`, `four_points`), `calc_iou` gives the
overlap ratio of two `Rect`s, and `suppress` runs greedy NMS over detections
in the order given.

## Yaw refinement

`YawPnP` holds:

- `sys_yaw`, the current system yaw;
- `transform`, a 4x4 matrix from solvePnP camera coordinates to world
  coordinates, and `intrinsic`, the 3x3 camera matrix;
- `pose`, the armor centre in world coordinates (homogeneous);
- the plate model corners (`set_world_points`, in millimetres) and the
  detected pixel corners (`set_image_points`).

Set the plate's elevation with `set_elevation_by_id(ArmorId...)` (the tower
is `DOWN_15`, all others `UP_15`) or `set_elevation_by_pitch(pitch)`.

- `pixel_cost`, `angle_cost` and `cost` (also available as calling the
  object) score a yaw offset.
- `yaw_by_pixel_cost` and `yaw_by_angle_cost` run a ternary search over an
  interval.
- `yaw_by_mix` chooses or blends the two results.
- `solve()` searches offsets in (-π/2, π/2) with step 0.03 and returns the
  absolute yaw.

## Polynomial fitting

```python
from openrm.polynomial import PolynomialFit

fit = PolynomialFit(2, 1)           # terms x^i y^j, i <= 2, j <= 1, i + j <= 2
r2 = fit.fit([(0, 0, 1), (1, 0, 3), (0, 1, 2), (1, 1, 4), (2, 0, 9)], need_r2=True)
print(fit.predict(1.5, 0.5), r2)
print(fit.describe())
```

`exponents()` lists the `(i, j)` powers of the non-constant terms in
coefficient order; `coefficients` holds the constant first. `fit` raises
`ValueError` for no samples or samples that are not `(x, y, z)` triples, and
returns R² only when `need_r2` is true.

## Terminal telemetry

A process publishes through a `MessageHub(unique_name)`:

- `post_number(name, value, kind=None)`: a named value; the kind (`'i'`,
  `'f'`, `'d'`, `'c'`) is inferred from the value when omitted. Names are cut
  to 14 bytes.
- `post_text(text, kind=MsgKind.NOTE)`: a status line, also printed to
  standard output (standard error for `MsgKind.ERROR`); the latest 32 are
  kept.
- `post_rect`, `post_points` and `post_point`: overlay marks in normalised
  image coordinates, at most 16 per send.
- `send()`: writes everything to shared memory and clears the pending marks.
- `close()`: releases the shared memory.

Viewers in another process take the hubs' unique names and run until `q` is
pressed:

- `openrm.dashboard.dashboard(key_names)`: all numbers and recent status lines.
- `openrm.monitor.monitor(key_names)`: overlay marks drawn as boxes, points
  and crosses.
- `openrm.oscilloscope.oscilloscope(key_names, msg_names)`: a scrolling plot
  of the named numbers.

The layout helpers `dashboard_layout`, `format_number`, `image_marks`,
`number_value` and `Waveform` can be used without a terminal. `term_hash` is
the string hash both sides use to match names.

## What this package does not do

- It installs no command-line programs; the viewers are functions to call
  from Python.
- It runs no neural network: it only post-processes output arrays you supply.
- It does not capture images or talk to cameras or serial devices.
- `YawPnP` does not solve the initial pose from image points; the camera
  transform, intrinsic matrix and armor centre must be supplied, and it draws
  no plot of its cost curves.