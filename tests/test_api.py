import pytest
from fastapi.testclient import TestClient

from ionos_provider.api import get_provider, get_request_context
from ionos_provider.context import RequestContext
from ionos_provider.main import app
from ionos_provider.services.machines import MachineProvider, hex_label
from ionos_provider.transcoder import encode_provider_id
from tests.fakes import DATACENTER_ID, IMAGE_ID, SSH_KEY, FakeCloud


SECRET = {"data": {"user": "dummy-user", "password": "dummy-password", "userData": "#cloud-config\n"}}
PROVIDER_SPEC = {
    "datacenterID": DATACENTER_ID,
    "cluster": "xyz",
    "zone": "de-fra",
    "cores": 1,
    "memory": 1024,
    "imageID": IMAGE_ID,
    "sshKey": SSH_KEY,
    "networkIDs": {"wan": "1"},
}


@pytest.fixture
def client(provider: MachineProvider):
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_request_context] = lambda: RequestContext()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client: TestClient):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_then_status_then_delete(client: TestClient, cloud: FakeCloud):
    created = client.post(
        "/v1/machines/create",
        json={
            "machine": {"name": "machine-a"},
            "machineClass": {"name": "class-a", "providerSpec": PROVIDER_SPEC},
            "secret": SECRET,
        },
    )
    assert created.status_code == 200
    body = created.json()
    assert body["nodeName"] == "machine-a"
    assert body["providerID"].startswith(f"ionos:///{DATACENTER_ID}/")

    status = client.post(
        "/v1/machines/status",
        json={
            "machine": {"name": "machine-a", "providerID": body["providerID"]},
            "secret": SECRET,
        },
    )
    assert status.status_code == 200
    assert status.json() == body

    deleted = client.post(
        "/v1/machines/delete",
        json={
            "machine": {"name": "machine-a", "providerID": body["providerID"]},
            "secret": SECRET,
        },
    )
    assert deleted.status_code == 200
    assert cloud.servers == {}
    assert cloud.volumes == {}


def test_list_machines_returns_matching_servers(client: TestClient, cloud: FakeCloud):
    server_id = cloud.add_server(
        "machine-a",
        labels={"cluster": hex_label("xyz"), "role": "node", "zone": hex_label("de-fra")},
    )
    cloud.add_server("other", labels={"cluster": hex_label("abc")})

    response = client.post(
        "/v1/machines/list",
        json={
            "machineClass": {"name": "class-a", "providerSpec": PROVIDER_SPEC},
            "secret": SECRET,
        },
    )
    assert response.status_code == 200
    assert response.json() == {
        "machineList": {encode_provider_id(DATACENTER_ID, server_id): "machine-a"}
    }


def test_invalid_machine_class_maps_to_bad_request(client: TestClient):
    response = client.post(
        "/v1/machines/create",
        json={
            "machine": {"name": "machine-a"},
            "machineClass": {"name": "class-a", "providerSpec": {"test": "invalid"}},
            "secret": SECRET,
        },
    )
    assert response.status_code == 400
    assert response.json()["code"] == "InvalidArgument"


def test_missing_machine_maps_to_not_found(client: TestClient):
    response = client.post(
        "/v1/machines/status",
        json={
            "machine": {
                "name": "machine-a",
                "providerID": encode_provider_id(
                    DATACENTER_ID, "b5f8d7a2-4c47-4b1f-a0c2-33e9c1a8d6f0"
                ),
            },
            "secret": SECRET,
        },
    )
    assert response.status_code == 404
    assert response.json()["code"] == "NotFound"


@pytest.mark.parametrize(
    "path,payload",
    [
        ("/v1/volumes/ids", {"pvSpecs": []}),
        ("/v1/machine-classes/migrate", {"classSpec": {}}),
    ],
)
def test_unimplemented_operations_return_501(client: TestClient, path: str, payload: dict):
    response = client.post(path, json=payload)
    assert response.status_code == 501
    assert response.json()["code"] == "Unimplemented"


def test_canceled_request_maps_to_499(client: TestClient, cloud: FakeCloud):
    cloud.add_server("machine-a")

    def canceled_context() -> RequestContext:
        ctx = RequestContext()
        ctx.cancel()
        return ctx

    app.dependency_overrides[get_request_context] = canceled_context
    response = client.post(
        "/v1/machines/list",
        json={
            "machineClass": {"name": "class-a", "providerSpec": PROVIDER_SPEC},
            "secret": SECRET,
        },
    )
    assert response.status_code == 499
    assert response.json()["code"] == "Canceled"
