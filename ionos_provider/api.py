from functools import lru_cache

from fastapi import APIRouter, Depends

from ionos_provider.clients.registry import ClientRegistry
from ionos_provider.config import get_settings
from ionos_provider.context import RequestContext
from ionos_provider.metrics import metrics
from ionos_provider.schemas import (
    CreateMachineRequest,
    CreateMachineResponse,
    DeleteMachineRequest,
    DeleteMachineResponse,
    GenerateMachineClassForMigrationRequest,
    GetMachineStatusRequest,
    GetMachineStatusResponse,
    GetVolumeIDsRequest,
    ListMachinesRequest,
    ListMachinesResponse,
)
from ionos_provider.services.machines import MachineProvider


router = APIRouter()


@lru_cache(maxsize=1)
def get_registry() -> ClientRegistry:
    return ClientRegistry()


def get_provider(registry: ClientRegistry = Depends(get_registry)) -> MachineProvider:
    return MachineProvider(registry, get_settings())


def get_request_context() -> RequestContext:
    return RequestContext(timeout_sec=get_settings().request_timeout_sec)


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics")
def metrics_endpoint() -> dict[str, int]:
    return metrics.snapshot()


@router.post("/v1/machines/create", response_model=CreateMachineResponse)
def create_machine(
    req: CreateMachineRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> CreateMachineResponse:
    return provider.create_machine(ctx, req)


@router.post("/v1/machines/delete", response_model=DeleteMachineResponse)
def delete_machine(
    req: DeleteMachineRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> DeleteMachineResponse:
    return provider.delete_machine(ctx, req)


@router.post("/v1/machines/status", response_model=GetMachineStatusResponse)
def get_machine_status(
    req: GetMachineStatusRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> GetMachineStatusResponse:
    return provider.get_machine_status(ctx, req)


@router.post("/v1/machines/list", response_model=ListMachinesResponse)
def list_machines(
    req: ListMachinesRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> ListMachinesResponse:
    return provider.list_machines(ctx, req)


@router.post("/v1/volumes/ids")
def get_volume_ids(
    req: GetVolumeIDsRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    provider.get_volume_ids(ctx, req)


@router.post("/v1/machine-classes/migrate")
def generate_machine_class_for_migration(
    req: GenerateMachineClassForMigrationRequest,
    provider: MachineProvider = Depends(get_provider),
    ctx: RequestContext = Depends(get_request_context),
) -> None:
    provider.generate_machine_class_for_migration(ctx, req)
