from .calculations import (
    EARTH_RADIUS_METERS,
    bearing_degrees,
    bounding_radius_meters,
    centroid,
    filter_within_radius,
    haversine_meters,
)

__all__ = [
    "EARTH_RADIUS_METERS",
    "bearing_degrees",
    "bounding_radius_meters",
    "centroid",
    "filter_within_radius",
    "haversine_meters",
]
