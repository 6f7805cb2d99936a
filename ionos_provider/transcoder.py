import uuid
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from ionos_provider.errors import (
    IncompleteIdentity,
    InvalidComponent,
    InvalidProviderSpec,
    MalformedIdentity,
    UnsupportedScheme,
)
from ionos_provider.models import NodeIdentity, NodeSpec
from ionos_provider.validation import validate_node_spec


PROVIDER_ID_SCHEME = "ionos"


def encode_provider_id(datacenter_id: str, server_id: str) -> str:
    return f"{PROVIDER_ID_SCHEME}:///{datacenter_id}/{server_id}"


def _parse_uuid(value: str, component: str) -> None:
    try:
        uuid.UUID(value)
    except ValueError as exc:
        raise InvalidComponent(f"{component} found is invalid: {value!r}") from exc


def decode_provider_id(provider_id: str) -> NodeIdentity:
    try:
        parsed = urlparse(provider_id)
    except (TypeError, ValueError) as exc:
        raise MalformedIdentity(f"provider ID given is malformed: {exc}") from exc
    if not parsed.scheme:
        raise MalformedIdentity(f"provider ID given is malformed: {provider_id!r}")
    if parsed.scheme != PROVIDER_ID_SCHEME:
        raise UnsupportedScheme(
            f"provider ID given contains an unsupported URL scheme {parsed.scheme!r}"
        )

    segments = parsed.path[1:].split("/") if parsed.path.startswith("/") else []
    if len(segments) != 2 or not all(segments):
        raise IncompleteIdentity(
            f"provider ID given contains an invalid URL: {provider_id!r}"
        )

    datacenter_id, server_id = segments
    _parse_uuid(datacenter_id, "datacenterID")
    _parse_uuid(server_id, "serverID")
    return NodeIdentity(datacenter_id=datacenter_id, server_id=server_id)


def decode_node_spec(raw: Any) -> NodeSpec:
    if not isinstance(raw, dict):
        raise InvalidProviderSpec(["provider spec must be a JSON object"])
    try:
        spec = NodeSpec.model_validate(raw)
    except ValidationError as exc:
        raise InvalidProviderSpec(
            [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
        ) from exc

    errors = validate_node_spec(spec)
    if errors:
        raise InvalidProviderSpec(errors)
    return spec
