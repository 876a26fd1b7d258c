# app/api/router.py
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, status
from neo4j import AsyncDriver
from app.models.graph import (
    GeodesicDistance,
    GeodesicDistanceRequest,
    Graph,
    GraphCreate,
    GraphDeleted,
    PathView,
    Vertex,
)
from app.services.graph_service import GraphService
from app.db.driver import get_db_driver
from app.core.limiter import limiter
from app.api.idempotency import IdempotentAPIRoute

router = APIRouter()
router.route_class = IdempotentAPIRoute

def get_service(driver: AsyncDriver = Depends(get_db_driver)) -> GraphService:
    return GraphService(driver)

@router.post("/graphs", status_code=status.HTTP_201_CREATED, response_model=Graph, tags=["Graphs"])
@limiter.limit("10/minute")
async def create_graph(
    request: Request,
    graph_data: GraphCreate,
    service: GraphService = Depends(get_service)
):
    """Validates the vertex/edge batch and persists it as a new graph in one transaction."""
    return await service.create_graph(graph_data)

@router.get("/graphs/{graph_id}", response_model=Graph, tags=["Graphs"])
@limiter.limit("200/minute")
async def read_graph(
    request: Request,
    graph_id: UUID,
    service: GraphService = Depends(get_service)
):
    return await service.read_graph(graph_id)

@router.delete("/graphs/{graph_id}", response_model=GraphDeleted, tags=["Graphs"])
@limiter.limit("10/minute")
async def delete_graph(
    request: Request,
    graph_id: UUID,
    service: GraphService = Depends(get_service)
):
    return await service.delete_graph(graph_id)

@router.get("/graphs/{graph_id}/shortest-path", response_model=list[Vertex], tags=["Paths"])
@limiter.limit("60/minute")
async def shortest_path(
    request: Request,
    graph_id: UUID,
    origin_id: UUID = Query(..., alias="originId"),
    destiny_id: UUID = Query(..., alias="destinyId"),
    service: GraphService = Depends(get_service)
):
    return await service.shortest_path(graph_id, origin_id, destiny_id)

@router.get("/graphs/{graph_id}/paths", response_model=list[PathView], tags=["Paths"])
@limiter.limit("30/minute")
async def all_paths(
    request: Request,
    graph_id: UUID,
    origin_id: UUID = Query(..., alias="originId"),
    destiny_id: UUID = Query(..., alias="destinyId"),
    limit_stop: int = Query(..., alias="limitStop", ge=0),
    service: GraphService = Depends(get_service)
):
    """Lists every simple path with at most `limitStop` intermediate vertices."""
    return await service.all_paths(graph_id, origin_id, destiny_id, limit_stop)

@router.post("/geodesic-distance", response_model=GeodesicDistance, tags=["Diagnostics"])
@limiter.limit("60/minute")
async def geodesic_distance(
    request: Request,
    distance_request: GeodesicDistanceRequest,
    service: GraphService = Depends(get_service)
):
    distance = await service.geodesic_distance(
        distance_request.origin.coordinates, distance_request.destiny.coordinates
    )
    return GeodesicDistance(distance=distance)
