from __future__ import annotations

import math

from pygame.math import Vector3

def distance(a: Vector3, b: Vector3) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    dz = b.z - a.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def direction(a: Vector3, b: Vector3) -> Vector3:
    return Vector3(b.x - a.x, b.y - a.y, b.z - a.z)


def _safe_normalize(vector: Vector3) -> Vector3:
    return _safe_normalize_xyz(vector.x, vector.y, vector.z)


def _safe_normalize_xyz(x: float, y: float, z: float) -> Vector3:
    magnitude_sq = x * x + y * y + z * z
    if magnitude_sq < 1e-18:
        return Vector3()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector3(x * inv, y * inv, z * inv)


def _heading_from_velocity(vector: Vector3) -> float:
    # yaw around the vertical axis, measured from +z
    if vector.x * vector.x + vector.z * vector.z < 1e-24:
        return 0.0
    return math.atan2(vector.x, vector.z)


def _midpoint(a: Vector3, b: Vector3) -> Vector3:
    return Vector3((a.x + b.x) / 2.0, (a.y + b.y) / 2.0, (a.z + b.z) / 2.0)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _clamp01(value: float) -> float:
    return _clamp_value(value, 0.0, 1.0)
