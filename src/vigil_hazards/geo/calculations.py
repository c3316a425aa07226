"""地理计算工具：全部距离统一以米为单位。"""

from __future__ import annotations

import math
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar

EARTH_RADIUS_METERS = 6_371_000.0
BOUNDING_RADIUS_MARGIN = 1.2

Item = TypeVar("Item")
LatLng = Tuple[float, float]


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """两点间大圆距离（米）。"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def centroid(points: Sequence[LatLng]) -> LatLng:
    """坐标算术平均；空输入返回 (0, 0)。"""
    if not points:
        return 0.0, 0.0
    lat = sum(p[0] for p in points) / len(points)
    lng = sum(p[1] for p in points) / len(points)
    return lat, lng


def bearing_degrees(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """A 点指向 B 点的初始方位角，范围 [0, 360)。"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dlambda = math.radians(lng2 - lng1)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def bounding_radius_meters(center: LatLng, points: Iterable[LatLng]) -> float:
    """中心到最远点的距离 × 1.2 安全系数；空输入为 0。"""
    distances = [haversine_meters(center[0], center[1], lat, lng) for lat, lng in points]
    if not distances:
        return 0.0
    return max(distances) * BOUNDING_RADIUS_MARGIN


def filter_within_radius(
    items: Iterable[Item],
    center: LatLng,
    radius_meters: float,
    *,
    position: Callable[[Item], LatLng],
) -> List[Tuple[Item, float]]:
    """筛选半径内的对象，返回 (对象, 距离米) 并按距离升序。"""
    matched: List[Tuple[Item, float]] = []
    for item in items:
        lat, lng = position(item)
        distance = haversine_meters(center[0], center[1], lat, lng)
        if distance <= radius_meters:
            matched.append((item, distance))
    matched.sort(key=lambda pair: pair[1])
    return matched
