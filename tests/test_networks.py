import pytest

from ionos_provider.context import RequestContext
from ionos_provider.errors import PoolExhausted
from ionos_provider.services.networks import (
    NicConfiguration,
    attach_lan,
    attach_lan_with_floating_ip,
    build_nic_properties,
    ensure_floating_pool_lan_deleted,
    floating_pool_lan_name,
    select_floating_ip,
)
from tests.fakes import DATACENTER_ID, FakeCloud, resource


POLL = {"interval_sec": 0, "max_retries": 3}


def test_nic_properties_default_keep_dhcp_and_no_firewall():
    assert build_nic_properties("2", NicConfiguration()) == {"lan": 2}


def test_nic_properties_apply_explicit_settings():
    config = NicConfiguration(lan_ip="10.0.0.5", enable_dhcp=False, enable_firewall=True)
    assert build_nic_properties("7", config) == {
        "lan": 7,
        "ips": ["10.0.0.5"],
        "dhcp": False,
        "firewallActive": True,
    }


def test_nic_properties_reject_non_numeric_lan():
    with pytest.raises(ValueError):
        build_nic_properties("wan", NicConfiguration())


def test_attach_lan_creates_nic_and_waits_for_it():
    cloud = FakeCloud()
    attach_lan(
        RequestContext(), cloud, DATACENTER_ID, "srv-1", "3", NicConfiguration(), **POLL
    )
    names = [name for name, _ in cloud.calls]
    assert names == ["create_nic", "get_nic"]
    _, (_, server_id, properties) = cloud.calls[0]
    assert server_id == "srv-1"
    assert properties == {"lan": 3}


def test_select_floating_ip_prefers_last_unused_address():
    block = resource(
        "pool-1",
        ips=["1.1.1.1", "1.1.1.2", "1.1.1.3", "1.1.1.4"],
        ipConsumers=[{"ip": "1.1.1.1"}, {"ip": "1.1.1.4"}],
    )
    assert select_floating_ip(block) == "1.1.1.3"


def test_select_floating_ip_raises_when_pool_exhausted():
    block = resource(
        "pool-1", ips=["1.1.1.1", "1.1.1.2"], ipConsumers=[{"ip": "1.1.1.2"}, {"ip": "1.1.1.1"}]
    )
    with pytest.raises(PoolExhausted) as excinfo:
        select_floating_ip(block)
    assert excinfo.value.pool_id == "pool-1"


def test_attach_with_floating_ip_injects_selected_address():
    cloud = FakeCloud()
    cloud.ip_blocks["pool-1"] = {
        "ips": ["1.1.1.1", "1.1.1.2", "1.1.1.3"],
        "ipConsumers": [{"ip": "1.1.1.2"}],
    }
    attach_lan_with_floating_ip(
        RequestContext(),
        cloud,
        DATACENTER_ID,
        "srv-1",
        "1",
        "pool-1",
        NicConfiguration(enable_firewall=True),
        **POLL,
    )
    create_calls = [args for name, args in cloud.calls if name == "create_nic"]
    assert len(create_calls) == 1
    assert create_calls[0][2] == {
        "lan": 1,
        "ips": ["1.1.1.3"],
        "firewallActive": True,
    }


def test_attach_with_exhausted_pool_creates_no_nic():
    cloud = FakeCloud()
    cloud.ip_blocks["pool-1"] = {
        "ips": ["1.1.1.1"],
        "ipConsumers": [{"ip": "1.1.1.1"}],
    }
    with pytest.raises(PoolExhausted):
        attach_lan_with_floating_ip(
            RequestContext(),
            cloud,
            DATACENTER_ID,
            "srv-1",
            "1",
            "pool-1",
            NicConfiguration(),
            **POLL,
        )
    assert cloud.count("create_nic") == 0


def test_floating_pool_lan_cleanup_deletes_matching_lans_only():
    cloud = FakeCloud()
    cloud.lans = {
        "1": {"name": floating_pool_lan_name("machine-a")},
        "2": {"name": "shared-wan"},
        "3": {"name": floating_pool_lan_name("machine-b")},
    }
    deleted = ensure_floating_pool_lan_deleted(
        cloud, DATACENTER_ID, "machine-a-floating-pool-ip"
    )
    assert deleted == 1
    assert sorted(cloud.lans) == ["2", "3"]
