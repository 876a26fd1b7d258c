# app/models/graph.py
import json
from typing import Literal
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Coordinate = tuple[float, float]
ExternalId = int | str

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Point(CamelModel):
    model_config = ConfigDict(allow_inf_nan=False)

    type: Literal["Point"] = "Point"
    coordinates: Coordinate

class LineString(CamelModel):
    model_config = ConfigDict(allow_inf_nan=False)

    type: Literal["LineString"] = "LineString"
    coordinates: list[Coordinate]

# --- Creation payloads ---

class VertexCreate(CamelModel):
    vertex_id: ExternalId
    data: Point
    name: str = "default"

class EdgeCreate(CamelModel):
    origin_id: ExternalId
    destiny_id: ExternalId
    name: str = "default"

class GraphCreate(CamelModel):
    name: str | None = None
    vertices: list[VertexCreate]
    edges: list[EdgeCreate] = Field(default_factory=list)

# --- Persisted records and views ---

class GraphRecord(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str

class Vertex(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    location: Point

class VertexRef(CamelModel):
    id: UUID
    location: Point

class Edge(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    origin: VertexRef
    destiny: VertexRef
    line: LineString
    distance: float = Field(ge=0)

    @field_validator("line", mode="before")
    @classmethod
    def _decode_line(cls, value):
        # Stored as a JSON document on the relationship.
        if isinstance(value, (str, bytes)):
            return json.loads(value)
        return value

class Graph(CamelModel):
    id: UUID
    name: str
    vertices: list[Vertex]
    edges: list[Edge]

class PathView(CamelModel):
    route: int
    distance: float
    path: list[Vertex]

class GraphDeleted(CamelModel):
    id: UUID
    message: str = "Graph deleted"

class GeodesicDistanceRequest(CamelModel):
    """Both points are (longitude, latitude) pairs on WGS-84."""
    origin: Point
    destiny: Point

    @field_validator("origin", "destiny")
    @classmethod
    def _check_wgs84_range(cls, point: Point) -> Point:
        longitude, latitude = point.coordinates
        if not -180 <= longitude <= 180:
            raise ValueError(f"longitude {longitude} is outside [-180, 180]")
        if not -90 <= latitude <= 90:
            raise ValueError(f"latitude {latitude} is outside [-90, 90]")
        return point

class GeodesicDistance(CamelModel):
    distance: float
