# app/services/graph_builder.py
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from app.core.exceptions import (
    DanglingEdgeReferenceException,
    DuplicateEdgeException,
    DuplicateVertexException,
)
from app.models.graph import Edge, EdgeCreate, LineString, Vertex, VertexCreate, VertexRef
from app.services.geometry import polyline_length

logger = logging.getLogger(__name__)

@dataclass
class BuiltGraph:
    """Validated vertex and edge records, ready to be persisted in one transaction."""
    vertices: list[Vertex] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

class GraphBuilder:
    def build(self, vertices: Sequence[VertexCreate], edges: Sequence[EdgeCreate]) -> BuiltGraph:
        """
        Validates a creation batch and resolves it into persistable records.
        The first violation found is raised; nothing is returned partially.
        """
        vertices_by_external_id: dict = {}
        for vertex_data in vertices:
            if vertex_data.vertex_id in vertices_by_external_id:
                raise DuplicateVertexException(vertex_data.vertex_id)
            vertices_by_external_id[vertex_data.vertex_id] = Vertex(
                name=vertex_data.name,
                location=vertex_data.data,
            )

        seen_pairs: set = set()
        built_edges: list[Edge] = []
        for edge_data in edges:
            pair = (edge_data.origin_id, edge_data.destiny_id)
            if pair in seen_pairs:
                raise DuplicateEdgeException(*pair)
            seen_pairs.add(pair)

            origin = vertices_by_external_id.get(edge_data.origin_id)
            destiny = vertices_by_external_id.get(edge_data.destiny_id)
            if origin is None or destiny is None:
                raise DanglingEdgeReferenceException(*pair)

            line = LineString(coordinates=[origin.location.coordinates, destiny.location.coordinates])
            built_edges.append(
                Edge(
                    name=edge_data.name,
                    origin=VertexRef(id=origin.id, location=origin.location),
                    destiny=VertexRef(id=destiny.id, location=destiny.location),
                    line=line,
                    distance=polyline_length(line.coordinates),
                )
            )

        logger.debug(
            "Validated graph batch with %d vertices and %d edges",
            len(vertices_by_external_id), len(built_edges),
        )
        return BuiltGraph(vertices=list(vertices_by_external_id.values()), edges=built_edges)
