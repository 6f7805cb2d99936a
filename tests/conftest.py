import pytest

from ionos_provider.clients.registry import ClientRegistry
from ionos_provider.config import Settings
from ionos_provider.metrics import metrics
from ionos_provider.services.machines import MachineProvider
from tests.fakes import FakeCloud


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def registry(cloud: FakeCloud) -> ClientRegistry:
    registry = ClientRegistry()
    registry.set_client("dummy-user", cloud, "dummy-password")  # type: ignore[arg-type]
    return registry


@pytest.fixture
def settings() -> Settings:
    return Settings(poll_interval_sec=0, poll_max_retries=3, request_timeout_sec=None)


@pytest.fixture
def provider(registry: ClientRegistry, settings: Settings) -> MachineProvider:
    return MachineProvider(registry, settings)
