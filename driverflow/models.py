"""
Domain models for operators and the members they manage.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from driverflow.constants import (
    DEFAULT_GROUP_BASE_NAME,
    DEFAULT_GROUP_PHOTO,
    DEFAULT_MAX_CLIENTS_PER_GROUP,
)
from driverflow.errors import ErrorCode


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DriverStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    VACATION = "vacation"


class MemberType(StrEnum):
    DRIVER = "driver"
    CLIENT = "client"


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    QR_READY = "qr_ready"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class BotRules(CamelModel):
    only_active_drivers_can_take_services: bool = True
    block_banned_interaction: bool = True
    auto_remove_from_groups_on_ban: bool = True
    block_services_for_banned_clients: bool = True


class OperatorSettings(CamelModel):
    group_base_name: str = DEFAULT_GROUP_BASE_NAME
    group_photo: str = DEFAULT_GROUP_PHOTO
    max_clients_per_group: int = Field(
        default=DEFAULT_MAX_CLIENTS_PER_GROUP, ge=1
    )
    bot_rules: BotRules = Field(default_factory=BotRules)


class WhatsAppConnection(CamelModel):
    is_connected: bool = False
    connected_at: datetime | None = None
    phone_number: str | None = None
    profile_name: str | None = None
    qr_code: str | None = None
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED


class Operator(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    created_at: datetime
    is_active: bool = True
    settings: OperatorSettings = Field(default_factory=OperatorSettings)
    whatsapp_connection: WhatsAppConnection | None = None


class Location(BaseModel):
    lat: float
    lng: float


class Driver(CamelModel):
    id: str
    name: str
    phone: str
    photo: str
    document: str
    status: DriverStatus = DriverStatus.ACTIVE
    is_banned: bool = False
    operator_id: str
    last_location: Location | None = None
    added_at: datetime


class Client(CamelModel):
    id: str
    name: str
    phone: str
    group_id: str | None = None  # derived from Group.client_ids
    is_banned: bool = False
    operator_id: str
    added_at: datetime


class Group(CamelModel):
    id: str
    name: str
    operator_id: str
    sequence_number: int = Field(ge=1)
    photo: str
    driver_ids: list[str] = Field(default_factory=list)
    client_ids: list[str] = Field(default_factory=list)
    created_at: datetime


class BannedNumber(CamelModel):
    id: str
    phone: str
    type: MemberType
    name: str
    reason: str
    date: datetime
    entity_id: str
    operator_id: str


class Snapshot(CamelModel):
    """
    The five collections the engine works on, in insertion order.
    """

    operators: list[Operator] = Field(default_factory=list)
    drivers: list[Driver] = Field(default_factory=list)
    clients: list[Client] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    banned_numbers: list[BannedNumber] = Field(default_factory=list)

    def operator(self, operator_id: str) -> Operator | None:
        return next((o for o in self.operators if o.id == operator_id), None)

    def driver(self, driver_id: str) -> Driver | None:
        return next((d for d in self.drivers if d.id == driver_id), None)

    def client(self, client_id: str) -> Client | None:
        return next((c for c in self.clients if c.id == client_id), None)

    def group(self, group_id: str) -> Group | None:
        return next((g for g in self.groups if g.id == group_id), None)

    def banned_number(self, banned_id: str) -> BannedNumber | None:
        return next((b for b in self.banned_numbers if b.id == banned_id), None)

    def drivers_of(self, operator_id: str) -> list[Driver]:
        return [d for d in self.drivers if d.operator_id == operator_id]

    def clients_of(self, operator_id: str) -> list[Client]:
        return [c for c in self.clients if c.operator_id == operator_id]

    def groups_of(self, operator_id: str) -> list[Group]:
        return [g for g in self.groups if g.operator_id == operator_id]

    def banned_numbers_of(self, operator_id: str) -> list[BannedNumber]:
        return [b for b in self.banned_numbers if b.operator_id == operator_id]


class Result(CamelModel):
    success: bool
    message: str
    code: ErrorCode | None = None
    id: str | None = None
