# app/services/geometry.py
import math
from collections.abc import Sequence

def polyline_length(coordinates: Sequence[Sequence[float]]) -> float:
    """
    Sums the planar Euclidean length of each consecutive segment of a polyline.
    Fewer than two points yield a zero-length (degenerate) edge.
    """
    total = 0.0
    for (x1, y1), (x2, y2) in zip(coordinates, coordinates[1:]):
        total += math.hypot(x2 - x1, y2 - y1)
    return total
