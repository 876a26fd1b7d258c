# app/services/graph_service.py
import asyncio
import logging
from uuid import UUID
from neo4j import AsyncDriver
from neo4j.exceptions import SessionExpired, ServiceUnavailable
from app.models.graph import (
    Coordinate,
    Edge,
    Graph,
    GraphCreate,
    GraphDeleted,
    GraphRecord,
    PathView,
    Vertex,
)
from app.db.repositories.graph_repository import GraphRepository
from app.core.exceptions import GraphNotFoundException
from app.core.config import settings
from app.services.geometry import polyline_length
from app.services.graph_builder import GraphBuilder
from app.services.path_graph import PathGraph
from app.services.pathfinding import AllPathsEnumerator, ShortestPathFinder

logger = logging.getLogger(__name__)

def build_path_graph(vertices: list[Vertex], edges: list[Edge]) -> PathGraph:
    """Assembles a fresh adjacency structure, weighing every edge from its geometry."""
    path_graph = PathGraph()
    for vertex in vertices:
        path_graph.add_vertex(vertex.id, vertex.location.coordinates)
    for edge in edges:
        path_graph.add_edge(edge.origin.id, edge.destiny.id, polyline_length(edge.line.coordinates))
    return path_graph

class GraphService:
    def __init__(self, driver: AsyncDriver | None = None, repo: GraphRepository | None = None):
        self.repo = repo or GraphRepository(driver)
        self.builder = GraphBuilder()

    async def create_graph(self, graph_data: GraphCreate) -> Graph:
        built = self.builder.build(graph_data.vertices, graph_data.edges)
        record = GraphRecord(name=graph_data.name or settings.DEFAULT_GRAPH_NAME)

        async with self.repo.transaction() as tx:
            await self.repo.create_graph_record(tx, record)
            await self.repo.persist_vertices(tx, record.id, built.vertices)
            await self.repo.persist_edges(tx, record.id, built.edges)

        logger.info(
            "Created graph %s with %d vertices and %d edges",
            record.id, len(built.vertices), len(built.edges),
        )
        return await self.read_graph(record.id)

    async def read_graph(self, graph_id: UUID) -> Graph:
        record, vertices, edges = await self._load(graph_id)
        return Graph(id=record.id, name=record.name, vertices=vertices, edges=edges)

    async def shortest_path(self, graph_id: UUID, origin_id: UUID, destiny_id: UUID) -> list[Vertex]:
        _, vertices, edges = await self._load(graph_id)
        finder = ShortestPathFinder(build_path_graph(vertices, edges))
        best = finder.find_best_path(origin_id, destiny_id)

        logger.debug("Shortest path in graph %s costs %.6f over %d vertices", graph_id, best.cost, len(best.vertices))
        vertices_by_id = {vertex.id: vertex for vertex in vertices}
        return [vertices_by_id[vertex_id] for vertex_id in best.vertices]

    async def all_paths(self, graph_id: UUID, origin_id: UUID, destiny_id: UUID, limit_stop: int) -> list[PathView]:
        _, vertices, edges = await self._load(graph_id)
        enumerator = AllPathsEnumerator(
            build_path_graph(vertices, edges),
            max_paths=settings.MAX_ENUMERATED_PATHS,
            max_depth=settings.MAX_PATH_DEPTH,
        )
        # The stop limit filters emitted paths; it does not prune the search.
        paths = [
            path for path in enumerator.list_all_paths(origin_id, destiny_id)
            if len(path) <= limit_stop + 2
        ]

        vertices_by_id = {vertex.id: vertex for vertex in vertices}
        return [
            PathView(
                route=route,
                distance=enumerator.path_cost(path),
                path=[vertices_by_id[vertex_id] for vertex_id in path],
            )
            for route, path in enumerate(paths, start=1)
        ]

    async def delete_graph(self, graph_id: UUID) -> GraphDeleted:
        async with self.repo.transaction() as tx:
            if await self.repo.load_graph_record(tx, graph_id) is None:
                raise GraphNotFoundException(graph_id)
            deleted_edges = await self.repo.delete_edges_by_graph(tx, graph_id)
            deleted_vertices = await self.repo.delete_vertices_by_graph(tx, graph_id)
            await self.repo.delete_graph_record(tx, graph_id)

        logger.info(
            "Deleted graph %s (%d vertices, %d edges)",
            graph_id, deleted_vertices, deleted_edges,
        )
        return GraphDeleted(id=graph_id)

    async def geodesic_distance(self, origin: Coordinate, destiny: Coordinate) -> float:
        return await self._with_retry(self.repo.geodesic_distance, origin, destiny)

    async def _load(self, graph_id: UUID) -> tuple[GraphRecord, list[Vertex], list[Edge]]:
        record, vertices, edges = await self._with_retry(self.repo.load_graph, graph_id)
        if record is None:
            raise GraphNotFoundException(graph_id)
        return record, vertices, edges

    async def _with_retry(self, func, *args, delay: float = 0.5, **kwargs):
        # Reads only: writes run in a single transaction and are never replayed.
        retries = settings.READ_RETRIES
        for attempt in range(retries):
            try:
                return await func(*args, **kwargs)
            except (SessionExpired, ServiceUnavailable) as exc:
                if attempt + 1 == retries:
                    raise
                logger.warning("Transient Neo4j error (%s); retrying read %d/%d", exc, attempt + 1, retries)
                await asyncio.sleep(delay * (attempt + 1))
