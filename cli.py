import asyncio
import json
from pathlib import Path
from uuid import UUID

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.syntax import Syntax

from app.core.config import settings
from app.core.exceptions import GraphEngineException
from app.db.driver import Neo4jDriver
from app.models.graph import GeodesicDistanceRequest, GraphCreate, Point
from app.services.graph_service import GraphService

cli_app = typer.Typer(help="Create geographic graphs and query paths over them.")
console = Console()

def _print_json(payload) -> None:
    console.print(Syntax(json.dumps(payload, indent=2), "json", theme="solarized-dark"))

def _dump(value):
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value.model_dump(mode="json", by_alias=True)

def _parse_coordinate(raw: str) -> tuple[float, float]:
    try:
        x, y = (float(part) for part in raw.split(","))
    except ValueError:
        raise typer.BadParameter(f"Expected 'x,y' but got '{raw}'.")
    return x, y

def _run(operation):
    """Runs one service operation against Neo4j and prints its result as JSON."""
    async def main():
        driver = await Neo4jDriver.get_driver()
        try:
            return await operation(GraphService(driver))
        finally:
            await Neo4jDriver.close_driver()

    try:
        result = asyncio.run(main())
    except GraphEngineException as exc:
        console.print(f"[bold red]Error ({exc.code}):[/bold red] {exc.message}")
        raise typer.Exit(code=1)
    _print_json(result)

@cli_app.command()
def create(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with vertices and edges."),
    name: str | None = typer.Option(None, "--name", "-n", help="Overrides the graph name in the file."),
):
    """
    Validates a vertex/edge batch from a JSON file and stores it as a new graph.
    """
    try:
        graph_data = GraphCreate.model_validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as exc:
        console.print(f"[bold red]Invalid graph file:[/bold red] {exc}")
        raise typer.Exit(code=1)
    if name:
        graph_data.name = name

    async def operation(service: GraphService):
        return _dump(await service.create_graph(graph_data))

    _run(operation)

@cli_app.command()
def show(graph_id: UUID = typer.Option(..., "--graph-id", "-g")):
    """Prints a stored graph with all of its vertices and edges."""
    async def operation(service: GraphService):
        return _dump(await service.read_graph(graph_id))

    _run(operation)

@cli_app.command()
def shortest_path(
    graph_id: UUID = typer.Option(..., "--graph-id", "-g"),
    origin_id: UUID = typer.Option(..., "--origin", "-o"),
    destiny_id: UUID = typer.Option(..., "--destiny", "-d"),
):
    async def operation(service: GraphService):
        return _dump(await service.shortest_path(graph_id, origin_id, destiny_id))

    _run(operation)

@cli_app.command()
def all_paths(
    graph_id: UUID = typer.Option(..., "--graph-id", "-g"),
    origin_id: UUID = typer.Option(..., "--origin", "-o"),
    destiny_id: UUID = typer.Option(..., "--destiny", "-d"),
    limit_stop: int = typer.Option(..., "--limit-stop", "-l", min=0, help="Maximum intermediate stops."),
):
    async def operation(service: GraphService):
        return _dump(await service.all_paths(graph_id, origin_id, destiny_id, limit_stop))

    _run(operation)

@cli_app.command()
def distance(
    origin: str = typer.Option(..., "--from", help="Origin as 'longitude,latitude'."),
    destiny: str = typer.Option(..., "--to", help="Destiny as 'longitude,latitude'."),
):
    """
    Geodesic distance in metres between two coordinates, computed by Neo4j.
    Diagnostic only; path weights use planar polyline length.
    """
    try:
        request = GeodesicDistanceRequest(
            origin=Point(coordinates=_parse_coordinate(origin)),
            destiny=Point(coordinates=_parse_coordinate(destiny)),
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc))

    async def operation(service: GraphService):
        return {"distance": await service.geodesic_distance(request.origin.coordinates, request.destiny.coordinates)}

    _run(operation)

@cli_app.command()
def delete(graph_id: UUID = typer.Option(..., "--graph-id", "-g")):
    """Deletes a graph's edges, then its vertices, then the graph record."""
    async def operation(service: GraphService):
        return _dump(await service.delete_graph(graph_id))

    _run(operation)

@cli_app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port", "-p"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development only)."),
):
    """Runs the HTTP API with uvicorn."""
    uvicorn.run("app.main:app", host=host, port=port, reload=reload, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    cli_app()
