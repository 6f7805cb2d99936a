import base64
import logging
import math
from collections.abc import Callable
from typing import Any, TypeVar

from ionos_provider.clients.http import RequestFailure
from ionos_provider.clients.ionos import IonosClient
from ionos_provider.clients.registry import ClientRegistry
from ionos_provider.config import Settings, get_settings
from ionos_provider.context import RequestContext
from ionos_provider.errors import (
    DriverError,
    ErrorCode,
    IdentityError,
    InvalidProviderSpec,
    PollingExhausted,
    PoolExhausted,
    UnsupportedImage,
    WaitCanceled,
)
from ionos_provider.metrics import metrics
from ionos_provider.models import (
    CLUSTER_LABEL,
    NODE_ROLE,
    REGION_LABEL,
    ROLE_LABEL,
    ZONE_LABEL,
    CloudResource,
    NodeIdentity,
    NodeSpec,
    ProvisioningLedger,
    ResourceState,
)
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
    MachineClass,
    Secret,
)
from ionos_provider.services.networks import (
    NicConfiguration,
    attach_lan,
    attach_lan_with_floating_ip,
    ensure_floating_pool_lan_deleted,
    floating_pool_lan_name,
)
from ionos_provider.services.waiter import wait_for_server, wait_for_volume
from ionos_provider.transcoder import (
    decode_node_spec,
    decode_provider_id,
    encode_provider_id,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

WAN_NIC = NicConfiguration(enable_dhcp=True, enable_firewall=True)
WORKERS_NIC = NicConfiguration(enable_dhcp=False, enable_firewall=False)


def hex_label(value: str) -> str:
    return value.encode("utf-8").hex()


def region_from_zone(zone: str) -> str:
    return zone.split("-", 1)[0]


def image_supports_cloud_init(image: CloudResource) -> bool:
    cloud_init = image.properties.get("cloudInit")
    return isinstance(cloud_init, str) and cloud_init not in {"", "NONE"}


KIB_PER_GB = 1048576


def boot_volume_size(spec: NodeSpec, image: CloudResource) -> float:
    """Boot volume size in GB.

    `volumeSize` is given in KiB and rounded up to whole GB; the volume is never
    smaller than the image it is created from.
    """
    image_size = float(image.properties.get("size") or 0)
    if not spec.volume_size:
        return image_size
    return max(float(math.ceil(spec.volume_size / KIB_PER_GB)), image_size)


def count_label_matches(labels: dict[str, str], spec: NodeSpec) -> int:
    expected = {
        CLUSTER_LABEL: hex_label(spec.cluster),
        ROLE_LABEL: NODE_ROLE,
        ZONE_LABEL: hex_label(spec.zone),
    }
    return sum(1 for key, value in expected.items() if labels.get(key) == value)


class MachineProvider:
    """Drives machine create/delete/status/list against the IONOS Cloud API."""

    def __init__(
        self, registry: ClientRegistry, settings: Settings | None = None
    ) -> None:
        self.registry = registry
        self.settings = settings or get_settings()

    @property
    def _poll(self) -> dict[str, Any]:
        return {
            "interval_sec": self.settings.poll_interval_sec,
            "max_retries": self.settings.poll_max_retries,
        }

    def _client_for(self, secret: Secret) -> IonosClient:
        return self.registry.get_client(secret.user, secret.password)

    @staticmethod
    def _decode_spec(machine_class: MachineClass | None) -> NodeSpec:
        if machine_class is None:
            raise DriverError(ErrorCode.INVALID_ARGUMENT, "machine class provided is nil")
        try:
            return decode_node_spec(machine_class.provider_spec)
        except InvalidProviderSpec as exc:
            raise DriverError(ErrorCode.INVALID_ARGUMENT, str(exc)) from exc

    @staticmethod
    def _decode_identity(provider_id: str) -> NodeIdentity:
        try:
            return decode_provider_id(provider_id)
        except IdentityError as exc:
            raise DriverError(ErrorCode.INVALID_ARGUMENT, str(exc)) from exc

    @staticmethod
    def _step(
        code: ErrorCode, action: str, fn: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        """Run one cloud step, classifying its failure as a DriverError."""
        try:
            return fn(*args, **kwargs)
        except DriverError:
            raise
        except WaitCanceled as exc:
            raise DriverError(ErrorCode.CANCELED, f"{action}: {exc}") from exc
        except RequestFailure as exc:
            raise DriverError(code, f"{action}: {exc}") from exc
        except (PollingExhausted, PoolExhausted, ValueError) as exc:
            raise DriverError(ErrorCode.INTERNAL, f"{action}: {exc}") from exc

    # create

    def create_machine(
        self, ctx: RequestContext, request: CreateMachineRequest
    ) -> CreateMachineResponse:
        machine = request.machine
        logger.info("machine creation request has been received for %s", machine.name)

        if machine.provider_id:
            raise DriverError(
                ErrorCode.INVALID_ARGUMENT,
                "machine creation with existing provider ID is not supported",
            )

        spec = self._decode_spec(request.machine_class)
        user_data = request.secret.user_data
        if user_data is None:
            raise DriverError(ErrorCode.INTERNAL, "userData doesn't exist")

        client = self._client_for(request.secret)
        try:
            image = client.get_image(spec.image_id)
            if not image_supports_cloud_init(image):
                raise UnsupportedImage(
                    f"imageID {spec.image_id} doesn't belong to a cloud-init enabled image"
                )
        except (RequestFailure, UnsupportedImage) as exc:
            raise DriverError(ErrorCode.INVALID_ARGUMENT, str(exc)) from exc

        ledger = ProvisioningLedger()
        try:
            server = self._provision(
                ctx, client, spec, machine.name, user_data, image, ledger
            )
        except DriverError as exc:
            logger.warning(
                "machine creation failed for %s, rolling back: %s", machine.name, exc
            )
            metrics.record("create", "failed")
            self._rollback(ctx, client, spec.datacenter_id, ledger)
            raise

        metrics.record("create", "succeeded")
        logger.info(
            "machine creation request has been processed for %s server_id=%s",
            machine.name,
            server.id,
        )
        return CreateMachineResponse(
            provider_id=encode_provider_id(spec.datacenter_id, server.id),
            node_name=server.name or machine.name,
        )

    def _provision(
        self,
        ctx: RequestContext,
        client: IonosClient,
        spec: NodeSpec,
        name: str,
        user_data: str,
        image: CloudResource,
        ledger: ProvisioningLedger,
    ) -> CloudResource:
        datacenter_id = spec.datacenter_id
        cluster_value = hex_label(spec.cluster)

        volume = self._create_volume(client, spec, name, user_data, image)
        ledger.volume_id = volume.id
        self._step(
            ErrorCode.UNAVAILABLE,
            "waiting for volume",
            wait_for_volume,
            ctx,
            client,
            datacenter_id,
            volume.id,
            **self._poll,
        )
        self._step(
            ErrorCode.INTERNAL,
            "labeling volume",
            client.add_volume_label,
            datacenter_id,
            volume.id,
            CLUSTER_LABEL,
            cluster_value,
        )

        server = self._step(
            ErrorCode.UNAVAILABLE,
            "creating server",
            client.create_server,
            datacenter_id,
            name=name,
            cores=spec.cores,
            ram_mb=spec.memory,
            boot_volume_id=volume.id,
        )
        ledger.server_id = server.id
        server_id = server.id

        self._wait_server(ctx, client, datacenter_id, server_id)
        self._step(
            ErrorCode.ABORTED,
            "stopping server",
            client.stop_server,
            datacenter_id,
            server_id,
        )
        self._wait_server(ctx, client, datacenter_id, server_id)

        labels = {
            CLUSTER_LABEL: cluster_value,
            ROLE_LABEL: NODE_ROLE,
            REGION_LABEL: hex_label(region_from_zone(spec.zone)),
            ZONE_LABEL: hex_label(spec.zone),
        }
        for key, value in labels.items():
            self._step(
                ErrorCode.INTERNAL,
                f"labeling server with {key}",
                client.add_server_label,
                datacenter_id,
                server_id,
                key,
                value,
            )

        if spec.floating_pool_id:
            self._step(
                ErrorCode.INTERNAL,
                "attaching WAN with floating IP",
                attach_lan_with_floating_ip,
                ctx,
                client,
                datacenter_id,
                server_id,
                spec.wan_network_id,
                spec.floating_pool_id,
                WAN_NIC,
                **self._poll,
            )
        else:
            self._step(
                ErrorCode.INTERNAL,
                "attaching WAN",
                attach_lan,
                ctx,
                client,
                datacenter_id,
                server_id,
                spec.wan_network_id,
                WAN_NIC,
                **self._poll,
            )

        if spec.workers_network_id:
            self._step(
                ErrorCode.INTERNAL,
                "attaching workers network",
                attach_lan,
                ctx,
                client,
                datacenter_id,
                server_id,
                spec.workers_network_id,
                WORKERS_NIC,
                **self._poll,
            )

        self._wait_server(ctx, client, datacenter_id, server_id)
        self._step(
            ErrorCode.ABORTED,
            "starting server",
            client.start_server,
            datacenter_id,
            server_id,
        )
        started = self._wait_server(ctx, client, datacenter_id, server_id)
        if started is None:
            raise DriverError(
                ErrorCode.INTERNAL, f"server {server_id} disappeared while starting"
            )
        return started

    def _create_volume(
        self,
        client: IonosClient,
        spec: NodeSpec,
        name: str,
        user_data: str,
        image: CloudResource,
    ) -> CloudResource:
        try:
            return client.create_volume(
                spec.datacenter_id,
                name=name,
                size=boot_volume_size(spec, image),
                volume_type=self.settings.volume_type,
                image_id=spec.image_id,
                ssh_keys=[f"{spec.ssh_key}\n"],
                user_data_b64=base64.b64encode(user_data.encode("utf-8")).decode(
                    "ascii"
                ),
            )
        except RequestFailure as exc:
            if exc.not_found:
                raise DriverError(
                    ErrorCode.CANCELED,
                    f"datacenter {spec.datacenter_id} rejected: {exc}",
                ) from exc
            raise DriverError(ErrorCode.UNAVAILABLE, f"creating volume: {exc}") from exc

    def _wait_server(
        self,
        ctx: RequestContext,
        client: IonosClient,
        datacenter_id: str,
        server_id: str,
    ) -> CloudResource | None:
        return self._step(
            ErrorCode.UNAVAILABLE,
            "waiting for server",
            wait_for_server,
            ctx,
            client,
            datacenter_id,
            server_id,
            **self._poll,
        )

    def _rollback(
        self,
        ctx: RequestContext,
        client: IonosClient,
        datacenter_id: str,
        ledger: ProvisioningLedger,
    ) -> None:
        if ledger.server_id:
            try:
                client.stop_server(datacenter_id, ledger.server_id)
                wait_for_server(ctx, client, datacenter_id, ledger.server_id, **self._poll)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "rollback: stopping server %s failed: %s", ledger.server_id, exc
                )

        if ledger.volume_id:
            try:
                client.delete_volume(datacenter_id, ledger.volume_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "rollback: deleting volume %s failed: %s", ledger.volume_id, exc
                )

        if ledger.server_id:
            try:
                client.delete_server(datacenter_id, ledger.server_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "rollback: deleting server %s failed: %s", ledger.server_id, exc
                )
        metrics.record("create", "rolled_back")

    # delete

    def delete_machine(
        self, ctx: RequestContext, request: DeleteMachineRequest
    ) -> DeleteMachineResponse:
        machine = request.machine
        logger.info("machine deletion request has been received for %s", machine.name)

        identity = self._decode_identity(machine.provider_id)
        datacenter_id, server_id = identity
        client = self._client_for(request.secret)

        try:
            client.stop_server(datacenter_id, server_id)
        except RequestFailure as exc:
            if exc.not_found:
                logger.info("VM %s (%s) does not exist", machine.name, server_id)
                metrics.record("delete", "absent")
                return DeleteMachineResponse()
            raise DriverError(ErrorCode.ABORTED, f"stopping server: {exc}") from exc

        self._wait_server(ctx, client, datacenter_id, server_id)

        floating_pool_id = ""
        if request.machine_class is not None:
            floating_pool_id = str(
                request.machine_class.provider_spec.get("floatingPoolID") or ""
            )
        if floating_pool_id:
            self._step(
                ErrorCode.UNAVAILABLE,
                "deleting floating pool LAN",
                ensure_floating_pool_lan_deleted,
                client,
                datacenter_id,
                floating_pool_lan_name(machine.name),
            )

        volumes = self._step(
            ErrorCode.UNAVAILABLE,
            "listing attached volumes",
            client.list_attached_volumes,
            datacenter_id,
            server_id,
        )
        for volume in volumes:
            self._delete_ignoring_absent(
                "deleting volume", client.delete_volume, datacenter_id, volume.id
            )
        self._delete_ignoring_absent(
            "deleting server", client.delete_server, datacenter_id, server_id
        )

        metrics.record("delete", "succeeded")
        logger.info("machine deletion request has been processed for %s", machine.name)
        return DeleteMachineResponse()

    @staticmethod
    def _delete_ignoring_absent(
        action: str, fn: Callable[[str, str], None], datacenter_id: str, resource_id: str
    ) -> None:
        try:
            fn(datacenter_id, resource_id)
        except RequestFailure as exc:
            if exc.not_found:
                return
            raise DriverError(ErrorCode.UNAVAILABLE, f"{action}: {exc}") from exc

    # status and listing

    def get_machine_status(
        self, ctx: RequestContext, request: GetMachineStatusRequest
    ) -> GetMachineStatusResponse:
        machine = request.machine
        logger.info("get request has been received for %s", machine.name)
        self._step(ErrorCode.CANCELED, "checking request", ctx.raise_if_done)

        if not machine.provider_id:
            raise DriverError(
                ErrorCode.NOT_FOUND,
                f"provider ID for machine {machine.name!r} is not defined",
            )

        datacenter_id, server_id = self._decode_identity(machine.provider_id)
        client = self._client_for(request.secret)
        try:
            server = client.get_server(datacenter_id, server_id, depth=1)
        except RequestFailure as exc:
            if exc.not_found:
                raise DriverError(ErrorCode.NOT_FOUND, str(exc)) from exc
            raise DriverError(ErrorCode.UNAVAILABLE, str(exc)) from exc

        if server.state == ResourceState.INACTIVE:
            raise DriverError(
                ErrorCode.NOT_FOUND, f"VM {server.name} ({server_id}) does not exist"
            )

        return GetMachineStatusResponse(
            provider_id=machine.provider_id, node_name=server.name
        )

    def list_machines(
        self, ctx: RequestContext, request: ListMachinesRequest
    ) -> ListMachinesResponse:
        spec = self._decode_spec(request.machine_class)
        logger.info(
            "list machines request has been received for %s",
            request.machine_class.name,
        )
        client = self._client_for(request.secret)

        try:
            servers = client.list_servers(spec.datacenter_id)
        except RequestFailure as exc:
            if exc.not_found:
                raise DriverError(
                    ErrorCode.CANCELED,
                    f"datacenter {spec.datacenter_id} rejected: {exc}",
                ) from exc
            raise DriverError(ErrorCode.UNAVAILABLE, str(exc)) from exc

        machine_list: dict[str, str] = {}
        for server in servers:
            self._step(ErrorCode.CANCELED, "listing machines", ctx.raise_if_done)
            if server.state == ResourceState.INACTIVE:
                continue
            labels = self._step(
                ErrorCode.UNAVAILABLE,
                "listing server labels",
                client.list_server_labels,
                spec.datacenter_id,
                server.id,
            )
            if count_label_matches(labels, spec) == 3:
                provider_id = encode_provider_id(spec.datacenter_id, server.id)
                machine_list[provider_id] = server.name

        logger.info(
            "list machines request has been processed for %s count=%s",
            request.machine_class.name,
            len(machine_list),
        )
        return ListMachinesResponse(machine_list=machine_list)

    # unsupported

    def get_volume_ids(
        self, ctx: RequestContext, request: GetVolumeIDsRequest
    ) -> None:
        logger.info("GetVolumeIDs request has been received for %s", request.pv_specs)
        raise DriverError(ErrorCode.UNIMPLEMENTED)

    def generate_machine_class_for_migration(
        self, ctx: RequestContext, request: GenerateMachineClassForMigrationRequest
    ) -> None:
        logger.info(
            "MigrateMachineClass request has been received for %s", request.class_spec
        )
        raise DriverError(ErrorCode.UNIMPLEMENTED)
