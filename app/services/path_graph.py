# app/services/path_graph.py
from collections.abc import Hashable

from app.core.exceptions import InvalidWeightException, UnknownVertexException
from app.models.graph import Coordinate

class PathGraph:
    """
    Query-local directed adjacency: vertex id -> ordered (neighbor id, weight) pairs.
    Built from a fresh load for every search and never shared between calls.
    """

    def __init__(self):
        self._locations: dict[Hashable, Coordinate | None] = {}
        # Neighbor dicts keep first-insertion order, so re-adding an edge updates
        # its weight without moving it.
        self._adjacency: dict[Hashable, dict[Hashable, float]] = {}

    def __contains__(self, vertex_id: Hashable) -> bool:
        return vertex_id in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def add_vertex(self, vertex_id: Hashable, location: Coordinate | None = None) -> None:
        self._locations[vertex_id] = location
        self._adjacency.setdefault(vertex_id, {})

    def add_edge(self, origin_id: Hashable, destiny_id: Hashable, weight: float) -> None:
        # `not >=` also rejects NaN.
        if not weight >= 0:
            raise InvalidWeightException(origin_id, destiny_id, weight)
        self.require(origin_id)
        self.require(destiny_id)
        self._adjacency[origin_id][destiny_id] = float(weight)

    def neighbors(self, vertex_id: Hashable) -> list[tuple[Hashable, float]]:
        self.require(vertex_id)
        return list(self._adjacency[vertex_id].items())

    def location(self, vertex_id: Hashable) -> Coordinate | None:
        self.require(vertex_id)
        return self._locations[vertex_id]

    def weight(self, origin_id: Hashable, destiny_id: Hashable) -> float | None:
        return self._adjacency.get(origin_id, {}).get(destiny_id)

    def require(self, vertex_id: Hashable) -> None:
        if vertex_id not in self._adjacency:
            raise UnknownVertexException(vertex_id)
