# app/services/pathfinding.py
import heapq
import itertools
import logging
from collections.abc import Hashable, Iterator
from dataclasses import dataclass

from app.core.exceptions import NoPathExistsException, PathLimitExceededException
from app.services.path_graph import PathGraph

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ShortestPath:
    vertices: list[Hashable]
    cost: float

class ShortestPathFinder:
    def __init__(self, graph: PathGraph):
        self.graph = graph

    def find_best_path(self, origin_id: Hashable, destiny_id: Hashable) -> ShortestPath:
        """
        Dijkstra over non-negative weights. Among equal-cost routes the one whose
        vertices were discovered first wins.

        Raises:
            UnknownVertexException: If either endpoint is not in the graph.
            NoPathExistsException: If destiny is unreachable from origin.
        """
        self.graph.require(origin_id)
        self.graph.require(destiny_id)

        if origin_id == destiny_id:
            return ShortestPath(vertices=[origin_id], cost=0.0)

        distances: dict[Hashable, float] = {origin_id: 0.0}
        previous: dict[Hashable, Hashable] = {}
        settled: set[Hashable] = set()
        # The counter keeps heap order stable and avoids comparing vertex ids.
        discovery = itertools.count()
        frontier = [(0.0, next(discovery), origin_id)]

        while frontier:
            cost, _, current = heapq.heappop(frontier)
            if current in settled:
                continue
            settled.add(current)
            if current == destiny_id:
                break

            for neighbor, weight in self.graph.neighbors(current):
                if neighbor in settled:
                    continue
                candidate = cost + weight
                if candidate < distances.get(neighbor, float("inf")):
                    distances[neighbor] = candidate
                    previous[neighbor] = current
                    heapq.heappush(frontier, (candidate, next(discovery), neighbor))

        if destiny_id not in settled:
            logger.info("No path from %s to %s", origin_id, destiny_id)
            raise NoPathExistsException(origin_id, destiny_id)

        path = [destiny_id]
        while path[-1] != origin_id:
            path.append(previous[path[-1]])
        path.reverse()
        return ShortestPath(vertices=path, cost=distances[destiny_id])

class AllPathsEnumerator:
    def __init__(self, graph: PathGraph, max_paths: int | None = None, max_depth: int | None = None):
        self.graph = graph
        self.max_paths = max_paths
        self.max_depth = max_depth

    def iter_paths(self, origin_id: Hashable, destiny_id: Hashable) -> Iterator[list[Hashable]]:
        """
        Yields every simple path from origin to destiny in depth-first order.
        Runs iteratively so long chains do not exhaust the recursion limit.
        """
        self.graph.require(origin_id)
        self.graph.require(destiny_id)

        if origin_id == destiny_id:
            yield [origin_id]
            return

        path = [origin_id]
        on_path = {origin_id}
        pending = [iter(self.graph.neighbors(origin_id))]

        while pending:
            step = next(pending[-1], None)
            if step is None:
                pending.pop()
                on_path.discard(path.pop())
                continue

            neighbor, _ = step
            if neighbor in on_path:
                continue
            # len(path) is the hop count of the path once neighbor is appended.
            if self.max_depth is not None and len(path) > self.max_depth:
                continue
            if neighbor == destiny_id:
                yield path + [neighbor]
                continue

            path.append(neighbor)
            on_path.add(neighbor)
            pending.append(iter(self.graph.neighbors(neighbor)))

    def list_all_paths(self, origin_id: Hashable, destiny_id: Hashable) -> list[list[Hashable]]:
        paths: list[list[Hashable]] = []
        for path in self.iter_paths(origin_id, destiny_id):
            if self.max_paths is not None and len(paths) >= self.max_paths:
                raise PathLimitExceededException(self.max_paths)
            paths.append(path)
        logger.debug("Enumerated %d simple paths from %s to %s", len(paths), origin_id, destiny_id)
        return paths

    def path_cost(self, path: list[Hashable]) -> float:
        return sum(self.graph.weight(origin, destiny) for origin, destiny in zip(path, path[1:]))
