[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "openrm"
version = "1.0.0"
description = "Armor detection post-processing, yaw refinement, polynomial surface fitting and terminal telemetry for robot vision"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "robotics",
    "computer-vision",
    "yolo",
    "non-maximum-suppression",
    "yaw-estimation",
    "polynomial-fit",
    "telemetry",
    "curses",
    "shared-memory",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Recognition",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Terminals",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["openrm"]

[tool.hatch.build.targets.sdist]
include = [
    "openrm",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
