from typing import Any

import httpx

from ionos_provider.clients.http import send_request
from ionos_provider.models import CloudResource, parse_collection


class IonosClient:
    """Thin client for the parts of the IONOS Cloud API v5 the provider drives."""

    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.client = httpx.Client(
            base_url=self.base_url,
            auth=(user, password),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return send_request(self.client, method, path, **kwargs)

    def _resource(self, method: str, path: str, **kwargs: Any) -> CloudResource:
        response = self._request(method, path, **kwargs)
        if not response.content:
            return CloudResource()
        return CloudResource.model_validate(response.json())

    def _collection(self, path: str, depth: int = 1) -> list[CloudResource]:
        response = self._request("GET", path, params={"depth": depth})
        return parse_collection(response.json())

    # images

    def get_image(self, image_id: str) -> CloudResource:
        return self._resource("GET", f"/images/{image_id}", params={"depth": 1})

    # volumes

    def create_volume(
        self,
        datacenter_id: str,
        *,
        name: str,
        size: float,
        volume_type: str,
        image_id: str,
        ssh_keys: list[str],
        user_data_b64: str,
    ) -> CloudResource:
        body = {
            "properties": {
                "name": name,
                "type": volume_type,
                "size": size,
                "image": image_id,
                "sshKeys": ssh_keys,
                "userData": user_data_b64,
            }
        }
        return self._resource(
            "POST", f"/datacenters/{datacenter_id}/volumes", json=body
        )

    def get_volume(self, datacenter_id: str, volume_id: str) -> CloudResource:
        return self._resource(
            "GET", f"/datacenters/{datacenter_id}/volumes/{volume_id}"
        )

    def delete_volume(self, datacenter_id: str, volume_id: str) -> None:
        self._request("DELETE", f"/datacenters/{datacenter_id}/volumes/{volume_id}")

    def add_volume_label(
        self, datacenter_id: str, volume_id: str, key: str, value: str
    ) -> None:
        self._request(
            "POST",
            f"/datacenters/{datacenter_id}/volumes/{volume_id}/labels",
            json={"properties": {"key": key, "value": value}},
        )

    # servers

    def create_server(
        self,
        datacenter_id: str,
        *,
        name: str,
        cores: int,
        ram_mb: int,
        boot_volume_id: str,
    ) -> CloudResource:
        body = {
            "properties": {
                "name": name,
                "cores": cores,
                "ram": ram_mb,
                "bootVolume": {"id": boot_volume_id},
            },
            "entities": {"volumes": {"items": [{"id": boot_volume_id}]}},
        }
        return self._resource(
            "POST", f"/datacenters/{datacenter_id}/servers", json=body
        )

    def get_server(
        self, datacenter_id: str, server_id: str, depth: int = 0
    ) -> CloudResource:
        return self._resource(
            "GET",
            f"/datacenters/{datacenter_id}/servers/{server_id}",
            params={"depth": depth},
        )

    def list_servers(self, datacenter_id: str) -> list[CloudResource]:
        return self._collection(f"/datacenters/{datacenter_id}/servers")

    def delete_server(self, datacenter_id: str, server_id: str) -> None:
        self._request("DELETE", f"/datacenters/{datacenter_id}/servers/{server_id}")

    def start_server(self, datacenter_id: str, server_id: str) -> None:
        self._request(
            "POST", f"/datacenters/{datacenter_id}/servers/{server_id}/start"
        )

    def stop_server(self, datacenter_id: str, server_id: str) -> None:
        self._request("POST", f"/datacenters/{datacenter_id}/servers/{server_id}/stop")

    def list_attached_volumes(
        self, datacenter_id: str, server_id: str
    ) -> list[CloudResource]:
        return self._collection(
            f"/datacenters/{datacenter_id}/servers/{server_id}/volumes"
        )

    def add_server_label(
        self, datacenter_id: str, server_id: str, key: str, value: str
    ) -> None:
        self._request(
            "POST",
            f"/datacenters/{datacenter_id}/servers/{server_id}/labels",
            json={"properties": {"key": key, "value": value}},
        )

    def list_server_labels(
        self, datacenter_id: str, server_id: str
    ) -> dict[str, str]:
        labels: dict[str, str] = {}
        for label in self._collection(
            f"/datacenters/{datacenter_id}/servers/{server_id}/labels"
        ):
            key = label.properties.get("key")
            if isinstance(key, str):
                labels[key] = str(label.properties.get("value") or "")
        return labels

    # network interfaces

    def create_nic(
        self, datacenter_id: str, server_id: str, properties: dict[str, Any]
    ) -> CloudResource:
        return self._resource(
            "POST",
            f"/datacenters/{datacenter_id}/servers/{server_id}/nics",
            json={"properties": properties},
        )

    def get_nic(self, datacenter_id: str, server_id: str, nic_id: str) -> CloudResource:
        return self._resource(
            "GET", f"/datacenters/{datacenter_id}/servers/{server_id}/nics/{nic_id}"
        )

    # IP blocks and LANs

    def get_ip_block(self, ip_block_id: str) -> CloudResource:
        return self._resource("GET", f"/ipblocks/{ip_block_id}")

    def list_lans(self, datacenter_id: str) -> list[CloudResource]:
        return self._collection(f"/datacenters/{datacenter_id}/lans")

    def delete_lan(self, datacenter_id: str, lan_id: str) -> None:
        self._request("DELETE", f"/datacenters/{datacenter_id}/lans/{lan_id}")
