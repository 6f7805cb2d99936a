from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


CLUSTER_LABEL = "cluster"
ROLE_LABEL = "role"
REGION_LABEL = "region"
ZONE_LABEL = "zone"
NODE_ROLE = "node"


class ResourceState(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    INACTIVE = "INACTIVE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: str | None) -> "ResourceState":
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw.upper())
        except ValueError:
            return cls.UNKNOWN


class NetworkIDs(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    wan: str = ""
    workers: str = ""


class NodeSpec(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    datacenter_id: str = Field(default="", alias="datacenterID")
    cluster: str = ""
    zone: str = ""
    cores: int = Field(default=0, ge=0)
    memory: int = Field(default=0, ge=0)
    image_id: str = Field(default="", alias="imageID")
    ssh_key: str = Field(default="", alias="sshKey")
    floating_pool_id: str = Field(default="", alias="floatingPoolID")
    network_ids: NetworkIDs | None = Field(default=None, alias="networkIDs")
    volume_size: float = Field(default=0, ge=0, alias="volumeSize")

    @property
    def wan_network_id(self) -> str:
        return self.network_ids.wan if self.network_ids else ""

    @property
    def workers_network_id(self) -> str:
        return self.network_ids.workers if self.network_ids else ""


class NodeIdentity(NamedTuple):
    datacenter_id: str
    server_id: str


@dataclass
class ProvisioningLedger:
    volume_id: str | None = None
    server_id: str | None = None


class ResourceMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    state: str | None = None


class CloudResource(BaseModel):
    """Any IONOS resource document: id, metadata, properties and entities."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    metadata: ResourceMetadata = Field(default_factory=ResourceMetadata)
    properties: dict[str, Any] = Field(default_factory=dict)
    entities: dict[str, Any] = Field(default_factory=dict)

    @property
    def state(self) -> ResourceState:
        return ResourceState.parse(self.metadata.state)

    @property
    def raw_state(self) -> str:
        return self.metadata.state or ""

    @property
    def name(self) -> str:
        return str(self.properties.get("name") or "")


def parse_collection(payload: dict) -> list[CloudResource]:
    items = payload.get("items")
    if not isinstance(items, list):
        return []
    return [CloudResource.model_validate(item) for item in items if isinstance(item, dict)]
