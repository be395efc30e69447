"""
Operations accepted by ``MembershipEngine.apply``.

Each operation is a plain pydantic model tagged with ``kind`` so a batch of
them can be parsed from JSON as ``Operation``.
"""

from typing import Annotated, Literal

from pydantic import Field

from driverflow.models import (
    BotRules,
    CamelModel,
    DriverStatus,
    Location,
    WhatsAppConnection,
)


class SettingsUpdate(CamelModel):
    """
    Partial operator settings. Only the fields that were set are merged;
    ``bot_rules`` replaces the stored rules as a whole.
    """

    group_base_name: str | None = None
    group_photo: str | None = None
    max_clients_per_group: int | None = None
    bot_rules: BotRules | None = None


class DriverUpdate(CamelModel):
    name: str | None = None
    photo: str | None = None
    document: str | None = None
    status: DriverStatus | None = None
    last_location: Location | None = None


class AddDriver(CamelModel):
    kind: Literal["add_driver"] = "add_driver"
    operator_id: str
    phone: str
    name: str
    document: str
    photo: str | None = None


class AddClient(CamelModel):
    kind: Literal["add_client"] = "add_client"
    operator_id: str
    phone: str
    name: str


class BanDriver(CamelModel):
    kind: Literal["ban_driver"] = "ban_driver"
    driver_id: str
    reason: str


class BanClient(CamelModel):
    kind: Literal["ban_client"] = "ban_client"
    client_id: str
    reason: str


class Unban(CamelModel):
    kind: Literal["unban"] = "unban"
    banned_number_id: str


class UpdateOperatorSettings(CamelModel):
    kind: Literal["update_operator_settings"] = "update_operator_settings"
    operator_id: str
    settings: SettingsUpdate


class AddDriverToGroup(CamelModel):
    kind: Literal["add_driver_to_group"] = "add_driver_to_group"
    group_id: str
    driver_id: str


class AddClientToGroup(CamelModel):
    """
    Place a client in a group, moving it out of any group it is in now.
    """

    kind: Literal["add_client_to_group"] = "add_client_to_group"
    group_id: str
    client_id: str


class RemoveDriverFromGroup(CamelModel):
    kind: Literal["remove_driver_from_group"] = "remove_driver_from_group"
    group_id: str
    driver_id: str


class RemoveClientFromGroup(CamelModel):
    kind: Literal["remove_client_from_group"] = "remove_client_from_group"
    group_id: str
    client_id: str


class CreateOperator(CamelModel):
    kind: Literal["create_operator"] = "create_operator"
    name: str
    email: str
    phone: str


class EnsureOperator(CamelModel):
    kind: Literal["ensure_operator"] = "ensure_operator"
    operator_id: str
    name: str
    email: str
    phone: str = ""


class UpdateDriver(CamelModel):
    kind: Literal["update_driver"] = "update_driver"
    driver_id: str
    updates: DriverUpdate


class UpdateWhatsAppConnection(CamelModel):
    kind: Literal["update_whatsapp_connection"] = "update_whatsapp_connection"
    operator_id: str
    connection: WhatsAppConnection


Operation = Annotated[
    AddDriver
    | AddClient
    | BanDriver
    | BanClient
    | Unban
    | UpdateOperatorSettings
    | AddDriverToGroup
    | AddClientToGroup
    | RemoveDriverFromGroup
    | RemoveClientFromGroup
    | CreateOperator
    | EnsureOperator
    | UpdateDriver
    | UpdateWhatsAppConnection,
    Field(discriminator="kind"),
]
