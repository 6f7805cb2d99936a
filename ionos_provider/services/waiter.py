import logging
from collections.abc import Callable

from ionos_provider.clients.http import RequestFailure
from ionos_provider.clients.ionos import IonosClient
from ionos_provider.context import RequestContext
from ionos_provider.errors import PollingExhausted
from ionos_provider.models import CloudResource, ResourceState


logger = logging.getLogger(__name__)

Accessor = Callable[[], CloudResource]


def wait_for_settlement(
    ctx: RequestContext,
    accessor: Accessor,
    kind: str,
    *,
    interval_sec: float,
    max_retries: int,
) -> CloudResource | None:
    """Poll until the resource is no longer BUSY.

    Returns the settled resource, or None when the resource is gone (404).
    Any other request failure is raised as-is without further polling.
    """
    for attempt in range(1, max_retries + 1):
        ctx.raise_if_done()
        try:
            resource = accessor()
        except RequestFailure as exc:
            if exc.not_found:
                logger.debug("%s disappeared while waiting for settlement", kind)
                return None
            raise

        if resource.state == ResourceState.UNKNOWN:
            logger.info(
                "%s %s reported unrecognised state %r, treating it as settled",
                kind,
                resource.id,
                resource.raw_state,
            )
        if resource.state != ResourceState.BUSY:
            return resource

        if attempt == max_retries:
            break
        logger.debug(
            "%s %s still busy attempt=%s/%s", kind, resource.id, attempt, max_retries
        )
        ctx.sleep(interval_sec)

    raise PollingExhausted(kind, max_retries)


def wait_for_volume(
    ctx: RequestContext,
    client: IonosClient,
    datacenter_id: str,
    volume_id: str,
    *,
    interval_sec: float,
    max_retries: int,
) -> CloudResource | None:
    return wait_for_settlement(
        ctx,
        lambda: client.get_volume(datacenter_id, volume_id),
        "volume",
        interval_sec=interval_sec,
        max_retries=max_retries,
    )


def wait_for_server(
    ctx: RequestContext,
    client: IonosClient,
    datacenter_id: str,
    server_id: str,
    *,
    interval_sec: float,
    max_retries: int,
) -> CloudResource | None:
    return wait_for_settlement(
        ctx,
        lambda: client.get_server(datacenter_id, server_id),
        "server",
        interval_sec=interval_sec,
        max_retries=max_retries,
    )


def wait_for_nic(
    ctx: RequestContext,
    client: IonosClient,
    datacenter_id: str,
    server_id: str,
    nic_id: str,
    *,
    interval_sec: float,
    max_retries: int,
) -> CloudResource | None:
    return wait_for_settlement(
        ctx,
        lambda: client.get_nic(datacenter_id, server_id, nic_id),
        "NIC",
        interval_sec=interval_sec,
        max_retries=max_retries,
    )
