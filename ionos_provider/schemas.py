from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DriverModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Machine(DriverModel):
    name: str
    provider_id: str = Field(default="", alias="providerID")


class MachineClass(DriverModel):
    name: str = ""
    provider_spec: dict[str, Any] = Field(default_factory=dict, alias="providerSpec")


class Secret(DriverModel):
    data: dict[str, str] = Field(default_factory=dict)

    @property
    def user(self) -> str:
        return self.data.get("user", "")

    @property
    def password(self) -> str:
        return self.data.get("password", "")

    @property
    def user_data(self) -> str | None:
        return self.data.get("userData")


class CreateMachineRequest(DriverModel):
    machine: Machine
    machine_class: MachineClass = Field(alias="machineClass")
    secret: Secret


class CreateMachineResponse(DriverModel):
    provider_id: str = Field(alias="providerID")
    node_name: str = Field(alias="nodeName")


class DeleteMachineRequest(DriverModel):
    machine: Machine
    machine_class: MachineClass | None = Field(default=None, alias="machineClass")
    secret: Secret


class DeleteMachineResponse(DriverModel):
    last_known_state: str = Field(default="", alias="lastKnownState")


class GetMachineStatusRequest(DriverModel):
    machine: Machine
    machine_class: MachineClass | None = Field(default=None, alias="machineClass")
    secret: Secret


class GetMachineStatusResponse(DriverModel):
    provider_id: str = Field(alias="providerID")
    node_name: str = Field(alias="nodeName")


class ListMachinesRequest(DriverModel):
    machine_class: MachineClass = Field(alias="machineClass")
    secret: Secret


class ListMachinesResponse(DriverModel):
    machine_list: dict[str, str] = Field(default_factory=dict, alias="machineList")


class GetVolumeIDsRequest(DriverModel):
    pv_specs: list[dict[str, Any]] = Field(default_factory=list, alias="pvSpecs")


class GenerateMachineClassForMigrationRequest(DriverModel):
    class_spec: dict[str, Any] = Field(default_factory=dict, alias="classSpec")

