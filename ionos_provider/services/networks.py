import logging
from dataclasses import dataclass
from typing import Any

from ionos_provider.clients.ionos import IonosClient
from ionos_provider.context import RequestContext
from ionos_provider.errors import PoolExhausted
from ionos_provider.models import CloudResource
from ionos_provider.services.waiter import wait_for_nic


logger = logging.getLogger(__name__)


@dataclass
class NicConfiguration:
    lan_ip: str | None = None
    enable_dhcp: bool = True
    enable_firewall: bool = False


def build_nic_properties(lan_id: str, config: NicConfiguration) -> dict[str, Any]:
    try:
        numeric_lan_id = int(lan_id)
    except ValueError as exc:
        raise ValueError(f"LAN ID {lan_id!r} is not numeric") from exc

    properties: dict[str, Any] = {"lan": numeric_lan_id}
    if config.lan_ip:
        properties["ips"] = [config.lan_ip]
    if not config.enable_dhcp:
        properties["dhcp"] = False
    if config.enable_firewall:
        properties["firewallActive"] = True
    return properties


def attach_lan(
    ctx: RequestContext,
    client: IonosClient,
    datacenter_id: str,
    server_id: str,
    lan_id: str,
    config: NicConfiguration,
    *,
    interval_sec: float,
    max_retries: int,
) -> None:
    properties = build_nic_properties(lan_id, config)
    nic = client.create_nic(datacenter_id, server_id, properties)
    logger.info(
        "nic created server_id=%s lan_id=%s nic_id=%s", server_id, lan_id, nic.id
    )
    wait_for_nic(
        ctx,
        client,
        datacenter_id,
        server_id,
        nic.id,
        interval_sec=interval_sec,
        max_retries=max_retries,
    )


def select_floating_ip(ip_block: CloudResource, pool_id: str | None = None) -> str:
    ips = ip_block.properties.get("ips") or []
    consumers = ip_block.properties.get("ipConsumers") or []
    consumed = {
        consumer.get("ip") for consumer in consumers if isinstance(consumer, dict)
    }

    selected: str | None = None
    # the last free address wins
    for ip in ips:
        if ip not in consumed:
            selected = ip

    if not selected:
        raise PoolExhausted(pool_id or ip_block.id)
    return selected


def attach_lan_with_floating_ip(
    ctx: RequestContext,
    client: IonosClient,
    datacenter_id: str,
    server_id: str,
    lan_id: str,
    floating_pool_id: str,
    config: NicConfiguration,
    *,
    interval_sec: float,
    max_retries: int,
) -> None:
    ip_block = client.get_ip_block(floating_pool_id)
    floating_ip = select_floating_ip(ip_block, floating_pool_id)
    logger.info(
        "floating ip selected pool_id=%s ip=%s server_id=%s",
        floating_pool_id,
        floating_ip,
        server_id,
    )

    attach_config = NicConfiguration(
        lan_ip=floating_ip,
        enable_dhcp=config.enable_dhcp,
        enable_firewall=config.enable_firewall,
    )
    attach_lan(
        ctx,
        client,
        datacenter_id,
        server_id,
        lan_id,
        attach_config,
        interval_sec=interval_sec,
        max_retries=max_retries,
    )


def floating_pool_lan_name(machine_name: str) -> str:
    return f"{machine_name}-floating-pool-ip"


def ensure_floating_pool_lan_deleted(
    client: IonosClient, datacenter_id: str, lan_name: str
) -> int:
    deleted = 0
    for lan in client.list_lans(datacenter_id):
        if lan.name == lan_name:
            client.delete_lan(datacenter_id, lan.id)
            deleted += 1
    if deleted:
        logger.info("floating pool lan deleted name=%s count=%s", lan_name, deleted)
    return deleted
