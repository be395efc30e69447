"""
Dashboard counters for a single operator and for the whole platform.
"""

from driverflow.models import CamelModel, DriverStatus, Snapshot


class GroupOccupancy(CamelModel):
    group_id: str
    name: str
    clients: int
    available: int
    percentage: float


class OperatorStats(CamelModel):
    total_drivers: int
    active_drivers: int
    total_clients: int
    clients_in_groups: int
    total_groups: int
    banned_numbers: int
    group_occupancy: list[GroupOccupancy]


class OperatorCounts(CamelModel):
    operator_id: str
    name: str
    drivers: int
    clients: int
    groups: int


class PlatformStats(CamelModel):
    total_operators: int
    active_operators: int
    total_drivers: int
    total_clients: int
    total_groups: int
    total_banned: int
    operators: list[OperatorCounts]


def operator_stats(snapshot: Snapshot, operator_id: str) -> OperatorStats | None:
    operator = snapshot.operator(operator_id)
    if operator is None:
        return None

    capacity = operator.settings.max_clients_per_group
    drivers = snapshot.drivers_of(operator_id)
    clients = snapshot.clients_of(operator_id)
    groups = snapshot.groups_of(operator_id)

    return OperatorStats(
        total_drivers=len(drivers),
        active_drivers=sum(1 for d in drivers if d.status == DriverStatus.ACTIVE),
        total_clients=len(clients),
        clients_in_groups=sum(1 for c in clients if c.group_id is not None),
        total_groups=len(groups),
        banned_numbers=len(snapshot.banned_numbers_of(operator_id)),
        group_occupancy=[
            GroupOccupancy(
                group_id=g.id,
                name=g.name,
                clients=len(g.client_ids),
                available=max(capacity - len(g.client_ids), 0),
                percentage=round(len(g.client_ids) / capacity * 100, 2),
            )
            for g in groups
        ],
    )


def platform_stats(snapshot: Snapshot) -> PlatformStats:
    return PlatformStats(
        total_operators=len(snapshot.operators),
        active_operators=sum(1 for o in snapshot.operators if o.is_active),
        total_drivers=len(snapshot.drivers),
        total_clients=len(snapshot.clients),
        total_groups=len(snapshot.groups),
        total_banned=len(snapshot.banned_numbers),
        operators=[
            OperatorCounts(
                operator_id=o.id,
                name=o.name,
                drivers=len(snapshot.drivers_of(o.id)),
                clients=len(snapshot.clients_of(o.id)),
                groups=len(snapshot.groups_of(o.id)),
            )
            for o in snapshot.operators
        ],
    )
