# app/db/repositories/graph_repository.py
import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID
from neo4j import AsyncDriver, AsyncManagedTransaction, AsyncTransaction
from pydantic import BaseModel, ValidationError
from app.core.exceptions import GraphPersistenceException, MalformedRecordException
from app.models.graph import Coordinate, Edge, GraphRecord, Vertex

Tx = AsyncTransaction | AsyncManagedTransaction

def _parse_record(model: type[BaseModel], kind: str, data: dict[str, Any]):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedRecordException(kind, str(exc)) from exc

def vertex_from_row(row: Mapping[str, Any]) -> Vertex:
    return _parse_record(Vertex, "vertex", {
        "id": row.get("id"),
        "name": row.get("name"),
        "location": {"coordinates": row.get("coordinates")},
    })

def edge_from_row(row: Mapping[str, Any]) -> Edge:
    return _parse_record(Edge, "edge", {
        "id": row.get("id"),
        "name": row.get("name"),
        "origin": {"id": row.get("originId"), "location": {"coordinates": row.get("originCoordinates")}},
        "destiny": {"id": row.get("destinyId"), "location": {"coordinates": row.get("destinyCoordinates")}},
        "line": row.get("line"),
        "distance": row.get("distance"),
    })

class GraphRepository:
    def __init__(self, driver: AsyncDriver):
        self.driver = driver

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncTransaction]:
        """
        Yields an explicit write transaction. It is committed when the block exits
        cleanly, rolled back when it raises, and the session is released either way.
        """
        async with self.driver.session() as session:
            tx = await session.begin_transaction()
            try:
                yield tx
            except BaseException:
                if not tx.closed():
                    await tx.rollback()
                raise
            else:
                await tx.commit()
            finally:
                if not tx.closed():
                    await tx.close()

    # --- Reads ---

    async def load_graph(self, graph_id: UUID) -> tuple[GraphRecord | None, list[Vertex], list[Edge]]:
        """Loads the graph record, its vertices and its edges from one read transaction."""
        async with self.driver.session() as session:
            return await session.execute_read(self._read_graph, graph_id)

    @staticmethod
    async def _read_graph(tx: Tx, graph_id: UUID):
        record = await GraphRepository.load_graph_record(tx, graph_id)
        if record is None:
            return None, [], []
        edges = await GraphRepository.load_edges(tx, graph_id)
        vertices = await GraphRepository.load_vertices(tx, graph_id)
        return record, vertices, edges

    @staticmethod
    async def load_graph_record(tx: Tx, graph_id: UUID) -> GraphRecord | None:
        result = await tx.run("MATCH (g:Graph {id: $graphId}) RETURN g.id AS id, g.name AS name", {"graphId": str(graph_id)})
        record = await result.single()
        if record is None:
            return None
        return _parse_record(GraphRecord, "graph", {"id": record["id"], "name": record["name"]})

    @staticmethod
    async def load_vertices(tx: Tx, graph_id: UUID) -> list[Vertex]:
        query = """
        MATCH (v:Vertex {graphId: $graphId})
        RETURN v.id AS id, v.name AS name, v.coordinates AS coordinates
        ORDER BY v.seq
        """
        result = await tx.run(query, {"graphId": str(graph_id)})
        records = [record async for record in result]
        return [vertex_from_row(record) for record in records]

    @staticmethod
    async def load_edges(tx: Tx, graph_id: UUID) -> list[Edge]:
        query = """
        MATCH (o:Vertex {graphId: $graphId})-[r:ROUTE {graphId: $graphId}]->(d:Vertex)
        RETURN r.id AS id, r.name AS name,
               o.id AS originId, o.coordinates AS originCoordinates,
               d.id AS destinyId, d.coordinates AS destinyCoordinates,
               r.line AS line, r.distance AS distance
        ORDER BY r.seq
        """
        result = await tx.run(query, {"graphId": str(graph_id)})
        records = [record async for record in result]
        return [edge_from_row(record) for record in records]

    async def geodesic_distance(self, origin: Coordinate, destiny: Coordinate) -> float:
        """WGS-84 distance in metres between two (longitude, latitude) pairs, computed by Neo4j."""
        query = """
        RETURN point.distance(
            point({longitude: $origin[0], latitude: $origin[1]}),
            point({longitude: $destiny[0], latitude: $destiny[1]})
        ) AS distance
        """
        async with self.driver.session() as session:
            result = await session.run(query, {"origin": list(origin), "destiny": list(destiny)})
            record = await result.single()
            return record["distance"]

    # --- Writes (always inside a caller-supplied transaction) ---

    @staticmethod
    async def create_graph_record(tx: Tx, record: GraphRecord) -> None:
        result = await tx.run("CREATE (g:Graph {id: $id, name: $name})", {"id": str(record.id), "name": record.name})
        await result.consume()

    @staticmethod
    async def persist_vertices(tx: Tx, graph_id: UUID, vertices: list[Vertex]) -> None:
        if not vertices:
            return
        vertices_payload = [
            {
                "id": str(vertex.id),
                "name": vertex.name,
                "coordinates": list(vertex.location.coordinates),
                "seq": seq,
            }
            for seq, vertex in enumerate(vertices)
        ]
        query = """
        UNWIND $vertices AS vertexData
        CREATE (:Vertex {
            id: vertexData.id,
            graphId: $graphId,
            name: vertexData.name,
            coordinates: vertexData.coordinates,
            seq: vertexData.seq
        })
        """
        result = await tx.run(query, {"vertices": vertices_payload, "graphId": str(graph_id)})
        await result.consume()

    @staticmethod
    async def persist_edges(tx: Tx, graph_id: UUID, edges: list[Edge]) -> None:
        if not edges:
            return
        edges_payload = [
            {
                "id": str(edge.id),
                "name": edge.name,
                "originId": str(edge.origin.id),
                "destinyId": str(edge.destiny.id),
                "line": json.dumps(edge.line.model_dump(mode="json")),
                "distance": edge.distance,
                "seq": seq,
            }
            for seq, edge in enumerate(edges)
        ]
        query = """
        UNWIND $edges AS edgeData
        MATCH (o:Vertex {id: edgeData.originId, graphId: $graphId})
        MATCH (d:Vertex {id: edgeData.destinyId, graphId: $graphId})
        CREATE (o)-[r:ROUTE {
            id: edgeData.id,
            graphId: $graphId,
            name: edgeData.name,
            line: edgeData.line,
            distance: edgeData.distance,
            seq: edgeData.seq
        }]->(d)
        RETURN count(r) AS created
        """
        result = await tx.run(query, {"edges": edges_payload, "graphId": str(graph_id)})
        record = await result.single()
        created = record["created"] if record else 0
        if created != len(edges):
            raise GraphPersistenceException(
                f"Persisted {created} of {len(edges)} edges for graph {graph_id}."
            )

    @staticmethod
    async def delete_edges_by_graph(tx: Tx, graph_id: UUID) -> int:
        query = """
        MATCH (:Vertex {graphId: $graphId})-[r:ROUTE]->()
        DELETE r
        RETURN count(r) AS deleted_count
        """
        result = await tx.run(query, {"graphId": str(graph_id)})
        record = await result.single()
        return record["deleted_count"] if record else 0

    @staticmethod
    async def delete_vertices_by_graph(tx: Tx, graph_id: UUID) -> int:
        # Plain DELETE: Neo4j refuses to remove a vertex that still has edges.
        query = """
        MATCH (v:Vertex {graphId: $graphId})
        DELETE v
        RETURN count(v) AS deleted_count
        """
        result = await tx.run(query, {"graphId": str(graph_id)})
        record = await result.single()
        return record["deleted_count"] if record else 0

    @staticmethod
    async def delete_graph_record(tx: Tx, graph_id: UUID) -> int:
        query = "MATCH (g:Graph {id: $graphId}) DELETE g RETURN count(g) AS deleted_count"
        result = await tx.run(query, {"graphId": str(graph_id)})
        record = await result.single()
        return record["deleted_count"] if record else 0
