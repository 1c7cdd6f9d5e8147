"""Point-in-polygon for ward boundaries, plus build-time simplification.

Containment is pure Python ray casting. Simplification uses shapely and only
runs while building the dataset.

Boundary rule: a point lying on any ring edge belongs to the polygon. That
holds for hole edges too, so a point on the rim of a hole is contained.
"""

from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape

from config import SIMPLIFY_TOLERANCE

EDGE_EPSILON = 1e-12


def ray_cast_contains(point_lon, point_lat, polygon_coords):
    """Check if point (lon, lat) is strictly inside a polygon ring.

    Uses the ray casting algorithm. polygon_coords is a list of [lon, lat] pairs.
    """
    n = len(polygon_coords)
    inside = False
    x, y = point_lon, point_lat
    j = n - 1

    for i in range(n):
        xi, yi = polygon_coords[i][0], polygon_coords[i][1]
        xj, yj = polygon_coords[j][0], polygon_coords[j][1]

        if ((yi > y) != (yj > y)) and (x < (xj - xi) * (y - yi) / (yj - yi) + xi):
            inside = not inside
        j = i

    return inside


def on_ring_edge(point_lon, point_lat, polygon_coords):
    """True if (lon, lat) lies on one of the ring's edges or vertices."""
    x, y = point_lon, point_lat
    n = len(polygon_coords)

    for i in range(n):
        xi, yi = polygon_coords[i - 1][0], polygon_coords[i - 1][1]
        xj, yj = polygon_coords[i][0], polygon_coords[i][1]

        cross = (xj - xi) * (y - yi) - (yj - yi) * (x - xi)
        if abs(cross) > EDGE_EPSILON:
            continue
        if (min(xi, xj) - EDGE_EPSILON <= x <= max(xi, xj) + EDGE_EPSILON
                and min(yi, yj) - EDGE_EPSILON <= y <= max(yi, yj) + EDGE_EPSILON):
            return True

    return False


def _check_ring(ring):
    if not isinstance(ring, (list, tuple)) or len(ring) < 3:
        raise ValueError('linear ring needs at least 3 positions')
    for position in ring:
        if not isinstance(position, (list, tuple)) or len(position) < 2:
            raise ValueError(f'invalid position in ring: {position!r}')


def polygon_contains(point_lon, point_lat, polygon_rings):
    """Test a single polygon: first ring is exterior, the rest are holes."""
    if not polygon_rings:
        raise ValueError('polygon has no rings')
    for ring in polygon_rings:
        _check_ring(ring)

    exterior = polygon_rings[0]
    if on_ring_edge(point_lon, point_lat, exterior):
        return True
    if not ray_cast_contains(point_lon, point_lat, exterior):
        return False

    for hole in polygon_rings[1:]:
        if on_ring_edge(point_lon, point_lat, hole):
            return True
        if ray_cast_contains(point_lon, point_lat, hole):
            return False
    return True


def contains(point, multi_polygon):
    """Check whether a coordinate falls inside a multi-polygon boundary.

    Args:
        point: Coordinate (or any object with lat/lon attributes)
        multi_polygon: list of polygons, each a list of rings of [lon, lat] pairs

    Returns:
        True if the point is inside (or on the edge of) any constituent polygon.

    Raises:
        ValueError: if the boundary is missing or malformed.
    """
    if not multi_polygon or not isinstance(multi_polygon, (list, tuple)):
        raise ValueError('boundary is empty or not a multi-polygon')

    for polygon_rings in multi_polygon:
        if not isinstance(polygon_rings, (list, tuple)):
            raise ValueError('multi-polygon member is not a list of rings')
        if polygon_contains(point.lon, point.lat, polygon_rings):
            return True
    return False


def simplify_multipolygon(multi_polygon, tolerance=SIMPLIFY_TOLERANCE):
    """Reduce the vertex count of a multi-polygon, preserving topology.

    Returns the simplified coordinates as nested lists. Raises ValueError if
    the input cannot be read as a multi-polygon or simplifies to nothing.
    """
    if not isinstance(multi_polygon, (list, tuple)):
        raise ValueError('multi-polygon coordinates must be a list')
    try:
        geom = shape({'type': 'MultiPolygon', 'coordinates': multi_polygon})
    except (TypeError, ValueError, IndexError, AttributeError, ShapelyError) as e:
        raise ValueError(f'unreadable multi-polygon: {e}') from e

    try:
        simplified = geom.simplify(tolerance, preserve_topology=True)
    except ShapelyError as e:
        raise ValueError(f'simplification failed: {e}') from e
    if simplified.is_empty:
        raise ValueError('geometry simplified to an empty shape')

    geojson = mapping(simplified)
    if geojson['type'] == 'Polygon':
        polygons = [geojson['coordinates']]
    elif geojson['type'] == 'MultiPolygon':
        polygons = geojson['coordinates']
    else:
        raise ValueError(f"unexpected geometry type after simplify: {geojson['type']}")

    return [
        [[[pos[0], pos[1]] for pos in ring] for ring in polygon]
        for polygon in polygons
    ]
