from fastapi.testclient import TestClient

from ionos_provider.main import app
from ionos_provider.metrics import OperationMetrics, metrics


def test_record_builds_operation_outcome_keys():
    counters = OperationMetrics()
    counters.record("create", "succeeded")
    counters.record("create", "succeeded", 2)
    counters.record("delete", "absent")
    assert counters.snapshot() == {
        "machine_create_succeeded_total": 3,
        "machine_delete_absent_total": 1,
    }

    counters.reset()
    assert counters.snapshot() == {}


def test_metrics_endpoint_exposes_counters():
    metrics.record("create", "rolled_back", 2)
    client = TestClient(app)
    response = client.get("/metrics")
    assert response.status_code == 200
    assert response.json()["machine_create_rolled_back_total"] == 2
