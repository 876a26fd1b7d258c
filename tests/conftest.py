import copy
from contextlib import asynccontextmanager
from uuid import UUID

import pytest

from app.models.graph import Edge, GraphRecord, Vertex


class StorageFailure(Exception):
    """Stands in for a driver-level error raised mid-transaction."""


class StagedTransaction:
    def __init__(self, graphs, vertices, edges):
        self.graphs: dict[UUID, GraphRecord] = copy.deepcopy(graphs)
        self.vertices: dict[UUID, list[Vertex]] = copy.deepcopy(vertices)
        self.edges: dict[UUID, list[Edge]] = copy.deepcopy(edges)


class InMemoryGraphRepository:
    """
    Mirrors GraphRepository's interface. Writes go to a staged copy that only
    replaces the committed state when the transaction block exits cleanly.
    """

    def __init__(self):
        self.graphs: dict[UUID, GraphRecord] = {}
        self.vertices: dict[UUID, list[Vertex]] = {}
        self.edges: dict[UUID, list[Edge]] = {}
        self.calls: list[str] = []
        self.fail_on: str | None = None
        self.failure: type[Exception] = StorageFailure
        self.commits = 0
        self.rollbacks = 0
        self.geodesic_calls: list[tuple] = []

    def _record(self, name: str):
        self.calls.append(name)
        if self.fail_on == name:
            raise self.failure(f"simulated failure in {name}")

    @asynccontextmanager
    async def transaction(self):
        tx = StagedTransaction(self.graphs, self.vertices, self.edges)
        try:
            yield tx
        except BaseException:
            self.rollbacks += 1
            raise
        self.graphs, self.vertices, self.edges = tx.graphs, tx.vertices, tx.edges
        self.commits += 1

    async def load_graph(self, graph_id):
        self._record("load_graph")
        record = self.graphs.get(graph_id)
        if record is None:
            return None, [], []
        return record, list(self.vertices.get(graph_id, [])), list(self.edges.get(graph_id, []))

    async def load_graph_record(self, tx, graph_id):
        self._record("load_graph_record")
        return tx.graphs.get(graph_id)

    async def create_graph_record(self, tx, record):
        self._record("create_graph_record")
        tx.graphs[record.id] = record

    async def persist_vertices(self, tx, graph_id, vertices):
        self._record("persist_vertices")
        tx.vertices.setdefault(graph_id, []).extend(vertices)

    async def persist_edges(self, tx, graph_id, edges):
        self._record("persist_edges")
        tx.edges.setdefault(graph_id, []).extend(edges)

    async def delete_edges_by_graph(self, tx, graph_id):
        self._record("delete_edges_by_graph")
        return len(tx.edges.pop(graph_id, []))

    async def delete_vertices_by_graph(self, tx, graph_id):
        self._record("delete_vertices_by_graph")
        if tx.edges.get(graph_id):
            raise StorageFailure("cannot delete vertices that still have edges")
        return len(tx.vertices.pop(graph_id, []))

    async def delete_graph_record(self, tx, graph_id):
        self._record("delete_graph_record")
        return 1 if tx.graphs.pop(graph_id, None) else 0

    async def geodesic_distance(self, origin, destiny):
        self._record("geodesic_distance")
        self.geodesic_calls.append((origin, destiny))
        return 1234.5


@pytest.fixture
def memory_repo():
    return InMemoryGraphRepository()


@pytest.fixture
def square_graph_payload():
    """A -> B -> D and A -> C -> D on a unit square, plus a return edge D -> A."""
    return {
        "name": "square",
        "vertices": [
            {"vertexId": 1, "data": {"type": "Point", "coordinates": [0, 0]}, "name": "A"},
            {"vertexId": 2, "data": {"type": "Point", "coordinates": [1, 0]}, "name": "B"},
            {"vertexId": 3, "data": {"type": "Point", "coordinates": [0, 1]}, "name": "C"},
            {"vertexId": 4, "data": {"type": "Point", "coordinates": [1, 1]}, "name": "D"},
        ],
        "edges": [
            {"originId": 1, "destinyId": 2},
            {"originId": 1, "destinyId": 3},
            {"originId": 2, "destinyId": 4},
            {"originId": 3, "destinyId": 4},
            {"originId": 4, "destinyId": 1},
        ],
    }
