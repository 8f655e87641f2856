"""API integration tests for meta-registry endpoints."""

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from meta_registry.api.dependencies import get_service_registry
from meta_registry.api.server import create_app
from meta_registry.storage.service_registry import ServiceRegistry
from meta_registry.storage.sqlite import SQLiteStorage


def greeter_document(deployment_id="dp_v1", kind="keyed", methods=("Greet",), key_type="string"):
    return {
        "deployment": {"id": deployment_id, "endpoint": "http://localhost:9080"},
        "messages": {
            "GreetRequest": {"fields": [{"name": "person_id", "number": 1, "type": key_type, "key": True}]},
            "GreetResponse": {"fields": [{"name": "message", "number": 1, "type": "string"}]},
        },
        "services": [{
            "name": "greeter.Greeter",
            "kind": kind,
            "methods": [{"name": m, "input": "GreetRequest", "output": "GreetResponse"} for m in methods],
        }],
    }


@pytest_asyncio.fixture
async def client(tmp_path):
    """HTTP client for testing, backed by a registry in tmp_path."""
    app = create_app()
    registry = ServiceRegistry(SQLiteStorage(str(tmp_path / "registry.db")))
    app.dependency_overrides[get_service_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_register_deployment(client):
    response = await client.post("/api/v1/deployments", json=greeter_document())

    assert response.status_code == 201
    data = response.json()
    assert data["deployment_id"] == "dp_v1"
    assert data["dry_run"] is False
    assert data["revisions"][0]["revision"] == 1
    assert data["revisions"][0]["key_definition"]["Greet"]["name"] == "person_id"


@pytest.mark.asyncio
async def test_register_dry_run(client):
    response = await client.post("/api/v1/deployments?dry_run=true", json=greeter_document())

    assert response.status_code == 201
    assert response.json()["dry_run"] is True

    response = await client.get("/api/v1/services")
    assert response.json() == []


@pytest.mark.asyncio
async def test_bad_key_definition(client):
    response = await client.post("/api/v1/deployments", json=greeter_document(key_type="int32"))

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "META0002"
    assert data["details"]["method"] == "Greet"


@pytest.mark.asyncio
async def test_revision_conflict(client):
    await client.post("/api/v1/deployments", json=greeter_document())

    response = await client.post(
        "/api/v1/deployments", json=greeter_document("dp_v2", methods=("Farewell",))
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "META0006"
    assert data["details"]["attribute"] == "method"
    assert data["details"]["deployment_id"] == "dp_v2"


@pytest.mark.asyncio
async def test_malformed_document(client):
    document = greeter_document()
    document["services"][0]["methods"][0]["input"] = "Missing"

    response = await client.post("/api/v1/deployments", json=document)

    assert response.status_code == 400
    assert response.json()["code"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "methods",
    [["Greet"], [{"name": "Greet", "input": ["GreetRequest"], "output": "GreetResponse"}]],
)
async def test_wrongly_shaped_methods(client, methods):
    document = greeter_document()
    document["services"][0]["methods"] = methods

    response = await client.post("/api/v1/deployments", json=document)

    assert response.status_code == 400
    assert response.json()["code"] is None


@pytest.mark.asyncio
async def test_nested_message_conflict(client):
    person_v1 = {"fields": [
        {"name": "name", "number": 1, "type": "string"},
        {"name": "age", "number": 2, "type": "int32"},
    ]}
    person_v2 = {"fields": [{"name": "age", "number": 2, "type": "string", "required": True}]}

    def with_person(document, person):
        document["messages"]["Person"] = person
        document["messages"]["GreetRequest"]["fields"].append({"name": "person", "number": 2, "type": "Person"})
        return document

    await client.post("/api/v1/deployments", json=with_person(greeter_document(), person_v1))
    response = await client.post("/api/v1/deployments", json=with_person(greeter_document("dp_v2"), person_v2))

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "META0006"
    assert data["details"]["attribute"] == "contract"


@pytest.mark.asyncio
async def test_describe_service(client):
    await client.post("/api/v1/deployments", json=greeter_document())
    await client.post("/api/v1/deployments", json=greeter_document("dp_v2", methods=("Greet", "Farewell")))

    response = await client.get("/api/v1/services/greeter.Greeter")

    assert response.status_code == 200
    data = response.json()
    assert data["revision"] == 2
    assert data["kind"] == "keyed"
    assert [m["name"] for m in data["methods"]] == ["Greet", "Farewell"]
    assert data["methods"][0]["key_field"] == "person_id"

    response = await client.get("/api/v1/services/greeter.Greeter", params={"revision": 1})
    assert response.json()["deployment_id"] == "dp_v1"

    response = await client.get("/api/v1/services/greeter.Greeter/revisions")
    assert [r["revision"] for r in response.json()] == [1, 2]


@pytest.mark.asyncio
async def test_unknown_service(client):
    response = await client.get("/api/v1/services/nope.Nope")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


@pytest.mark.asyncio
async def test_deployments(client):
    await client.post("/api/v1/deployments", json=greeter_document())
    await client.post("/api/v1/deployments", json=greeter_document("dp_v2"))

    response = await client.get("/api/v1/deployments")
    assert [d["id"] for d in response.json()] == ["dp_v1", "dp_v2"]

    response = await client.get("/api/v1/deployments/dp_v1")
    assert response.json()["endpoint"] == "http://localhost:9080"

    response = await client.delete("/api/v1/deployments/dp_v2")
    assert response.status_code == 400

    response = await client.delete("/api/v1/deployments/dp_v1")
    assert response.status_code == 204

    response = await client.get("/api/v1/deployments/dp_v1")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_explain_error(client):
    response = await client.get("/api/v1/errors/META0006")

    assert response.status_code == 200
    assert response.json()["title"] == "Service revision conflict"

    response = await client.get("/api/v1/errors/META0001")
    assert response.status_code == 404
