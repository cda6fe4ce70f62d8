"""Armor detection post-processing, yaw refinement, polynomial fitting and terminal telemetry."""

__version__ = "1.0.0"

__all__ = [
    "nms",
    "nms_v5c36",
    "yawpnp",
    "polynomial",
    "message",
    "dashboard",
    "monitor",
    "oscilloscope",
]