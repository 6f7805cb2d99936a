from ionos_provider.models import NodeSpec


def validate_node_spec(spec: NodeSpec) -> list[str]:
    errors: list[str] = []

    if not spec.datacenter_id:
        errors.append("datacenterID is a required field")
    if not spec.cluster:
        errors.append("cluster is a required field")
    if not spec.zone:
        errors.append("zone is a required field")
    if not spec.cores:
        errors.append("cores is a required field")
    if not spec.memory:
        errors.append("memory is a required field")
    if not spec.image_id:
        errors.append("imageID is a required field")
    if not spec.ssh_key:
        errors.append("sshKey is a required field")
    # an absent networkIDs group and an empty wan member read the same
    if not spec.wan_network_id:
        errors.append("networkIDs.wan is a required field")

    return errors
