from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.router import get_service
from app.core.config import settings
from app.main import app
from app.services.graph_service import GraphService


@pytest.fixture
def client(memory_repo):
    app.dependency_overrides[get_service] = lambda: GraphService(repo=memory_repo)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def square(client, square_graph_payload):
    response = client.post("/graphs", json=square_graph_payload)
    assert response.status_code == 201
    body = response.json()
    return body["id"], {vertex["name"]: vertex["id"] for vertex in body["vertices"]}


def test_create_graph_returns_camel_case_graph(client, square_graph_payload):
    response = client.post("/graphs", json=square_graph_payload)

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "square"
    assert body["vertices"][0]["location"] == {"type": "Point", "coordinates": [0.0, 0.0]}
    first_edge = body["edges"][0]
    assert first_edge["line"]["type"] == "LineString"
    assert first_edge["distance"] == pytest.approx(1.0)
    assert first_edge["origin"]["id"] == body["vertices"][0]["id"]


def test_duplicate_vertex_is_a_conflict(client, square_graph_payload):
    square_graph_payload["vertices"].append(square_graph_payload["vertices"][1])

    response = client.post("/graphs", json=square_graph_payload)

    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_vertex"


def test_dangling_edge_is_a_bad_request(client, square_graph_payload):
    square_graph_payload["edges"].append({"originId": 4, "destinyId": 99})

    response = client.post("/graphs", json=square_graph_payload)

    assert response.status_code == 400
    assert response.json()["error"] == "dangling_edge_reference"


def test_read_graph_round_trips(client, square):
    graph_id, _ = square
    response = client.get(f"/graphs/{graph_id}")
    assert response.status_code == 200
    assert len(response.json()["edges"]) == 5


def test_read_missing_graph(client):
    response = client.get(f"/graphs/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"] == "graph_not_found"


def test_shortest_path_endpoint(client, square):
    graph_id, ids = square
    response = client.get(
        f"/graphs/{graph_id}/shortest-path",
        params={"originId": ids["B"], "destinyId": ids["C"]},
    )
    assert response.status_code == 200
    assert [vertex["name"] for vertex in response.json()] == ["B", "D", "A", "C"]


def test_shortest_path_unknown_vertex(client, square):
    graph_id, ids = square
    response = client.get(
        f"/graphs/{graph_id}/shortest-path",
        params={"originId": ids["A"], "destinyId": str(uuid4())},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "unknown_vertex"


def test_shortest_path_unreachable(client, square_graph_payload):
    square_graph_payload["vertices"].append(
        {"vertexId": 5, "data": {"type": "Point", "coordinates": [5, 5]}, "name": "island"}
    )
    body = client.post("/graphs", json=square_graph_payload).json()
    ids = {vertex["name"]: vertex["id"] for vertex in body["vertices"]}

    response = client.get(
        f"/graphs/{body['id']}/shortest-path",
        params={"originId": ids["A"], "destinyId": ids["island"]},
    )

    assert response.status_code == 404
    assert response.json()["error"] == "no_path_exists"


def test_paths_endpoint_numbers_routes(client, square):
    graph_id, ids = square
    response = client.get(
        f"/graphs/{graph_id}/paths",
        params={"originId": ids["A"], "destinyId": ids["D"], "limitStop": 1},
    )

    assert response.status_code == 200
    routes = response.json()
    assert [route["route"] for route in routes] == [1, 2]
    assert [[vertex["name"] for vertex in route["path"]] for route in routes] == [["A", "B", "D"], ["A", "C", "D"]]
    assert routes[0]["distance"] == pytest.approx(2.0)


def test_paths_endpoint_rejects_negative_stop_limit(client, square):
    graph_id, ids = square
    response = client.get(
        f"/graphs/{graph_id}/paths",
        params={"originId": ids["A"], "destinyId": ids["D"], "limitStop": -1},
    )
    assert response.status_code == 422


def test_delete_graph_endpoint(client, square):
    graph_id, _ = square

    response = client.delete(f"/graphs/{graph_id}")
    assert response.status_code == 200
    assert response.json() == {"id": graph_id, "message": "Graph deleted"}

    assert client.get(f"/graphs/{graph_id}").status_code == 404
    assert client.delete(f"/graphs/{graph_id}").status_code == 404


def test_geodesic_distance_endpoint(client, memory_repo):
    response = client.post(
        "/geodesic-distance",
        json={
            "origin": {"type": "Point", "coordinates": [-46.6, -23.5]},
            "destiny": {"type": "Point", "coordinates": [-43.2, -22.9]},
        },
    )
    assert response.status_code == 200
    assert response.json() == {"distance": 1234.5}
    assert memory_repo.geodesic_calls == [((-46.6, -23.5), (-43.2, -22.9))]


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_coordinates_are_rejected(client, memory_repo, literal):
    body = (
        '{"vertices": ['
        '{"vertexId": 1, "data": {"type": "Point", "coordinates": [' + literal + ', 0]}},'
        '{"vertexId": 2, "data": {"type": "Point", "coordinates": [1, 0]}}],'
        ' "edges": [{"originId": 1, "destinyId": 2}]}'
    )

    response = client.post("/graphs", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 422
    assert memory_repo.graphs == {}
    assert all("input" not in error for error in response.json()["detail"])
    assert memory_repo.calls == []


@pytest.mark.parametrize("coordinates", [[0, 91], [0, -90.5], [180.5, 0]])
def test_geodesic_distance_rejects_out_of_range_coordinates(client, memory_repo, coordinates):
    response = client.post(
        "/geodesic-distance",
        json={
            "origin": {"type": "Point", "coordinates": [0, 0]},
            "destiny": {"type": "Point", "coordinates": coordinates},
        },
    )
    assert response.status_code == 422
    assert memory_repo.geodesic_calls == []


def test_path_limit_maps_to_unprocessable(client, square, monkeypatch):
    graph_id, ids = square
    monkeypatch.setattr(settings, "MAX_ENUMERATED_PATHS", 1)

    response = client.get(
        f"/graphs/{graph_id}/paths",
        params={"originId": ids["A"], "destinyId": ids["D"], "limitStop": 3},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "path_limit_exceeded"
