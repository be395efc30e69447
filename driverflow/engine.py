"""
Membership engine.

Every operation is a transition ``(snapshot, operation) -> (snapshot, result)``.
The snapshot passed in is never mutated; handlers work on a deep copy and a
rejected operation hands back the original snapshot untouched.

Groups own membership. ``Client.group_id`` is re-derived from
``Group.client_ids`` after every transition so the two never drift apart.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import NamedTuple, Protocol, TypeVar
from uuid import uuid4

from pydantic import ValidationError

from driverflow.constants import (
    BAN_ID_PREFIX,
    CLIENT_ID_PREFIX,
    DEFAULT_DRIVER_PHOTO,
    DRIVER_ID_PREFIX,
    GROUP_ID_PREFIX,
    OPERATOR_ID_PREFIX,
)
from driverflow.errors import (
    AlreadyBanned,
    DuplicatePhone,
    EntityNotFound,
    GroupFull,
    InvalidSettings,
    InvalidUpdate,
    MemberBanned,
    MembershipError,
    OperatorNotFound,
)
from driverflow.models import (
    BannedNumber,
    Client,
    Driver,
    Group,
    MemberType,
    Operator,
    OperatorSettings,
    Result,
    Snapshot,
)
from driverflow.operations import (
    AddClient,
    AddClientToGroup,
    AddDriver,
    AddDriverToGroup,
    BanClient,
    BanDriver,
    CreateOperator,
    EnsureOperator,
    Operation,
    RemoveClientFromGroup,
    RemoveDriverFromGroup,
    Unban,
    UpdateDriver,
    UpdateOperatorSettings,
    UpdateWhatsAppConnection,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]
IdFn = Callable[[str], str]


class _HasId(Protocol):
    id: str


T = TypeVar("T", bound=_HasId)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


class Transition(NamedTuple):
    snapshot: Snapshot
    result: Result


class MembershipEngine:
    def __init__(
        self,
        *,
        now_fn: NowFn = lambda: datetime.now(UTC),
        id_fn: IdFn = new_id,
    ) -> None:
        self.now_fn = now_fn
        self.id_fn = id_fn
        self._handlers: dict[type, Callable[[Snapshot, Operation], Result]] = {
            AddDriver: self._add_driver,
            AddClient: self._add_client,
            BanDriver: self._ban_driver,
            BanClient: self._ban_client,
            Unban: self._unban,
            UpdateOperatorSettings: self._update_operator_settings,
            AddDriverToGroup: self._add_driver_to_group,
            AddClientToGroup: self._add_client_to_group,
            RemoveDriverFromGroup: self._remove_driver_from_group,
            RemoveClientFromGroup: self._remove_client_from_group,
            CreateOperator: self._create_operator,
            EnsureOperator: self._ensure_operator,
            UpdateDriver: self._update_driver,
            UpdateWhatsAppConnection: self._update_whatsapp_connection,
        }

    def apply(self, snapshot: Snapshot, operation: Operation) -> Transition:
        """
        Apply one operation and return the next snapshot with its outcome.

        Failures never raise: a ``MembershipError`` becomes a failed
        ``Result`` paired with the unchanged input snapshot.
        """
        handler = self._handlers[type(operation)]
        state = snapshot.model_copy(deep=True)
        try:
            result = handler(state, operation)
        except MembershipError as e:
            logger.warning("%s rejected (%s): %s", operation.kind, e.code, e)
            return Transition(
                snapshot, Result(success=False, message=e.message, code=e.code)
            )

        _sync_client_groups(state)
        logger.info("%s applied: %s", operation.kind, result.message)
        return Transition(state, result)

    def apply_all(
        self, snapshot: Snapshot, operations: list[Operation]
    ) -> tuple[Snapshot, list[Result]]:
        results = []
        for operation in operations:
            snapshot, result = self.apply(snapshot, operation)
            results.append(result)
        return snapshot, results

    # -- drivers -------------------------------------------------------------

    def _add_driver(self, state: Snapshot, op: AddDriver) -> Result:
        _check_phone_for_driver(state, op.phone)
        if state.operator(op.operator_id) is None:
            raise OperatorNotFound(op.operator_id)

        driver = Driver(
            id=self.id_fn(DRIVER_ID_PREFIX),
            name=op.name,
            phone=op.phone,
            photo=op.photo or DEFAULT_DRIVER_PHOTO,
            document=op.document,
            operator_id=op.operator_id,
            added_at=self.now_fn(),
        )
        state.drivers.append(driver)

        groups = state.groups_of(op.operator_id)
        for group in groups:
            if driver.id not in group.driver_ids:
                group.driver_ids.append(driver.id)

        return Result(
            success=True,
            message=f"Driver added to all {len(groups)} groups",
            id=driver.id,
        )

    def _update_driver(self, state: Snapshot, op: UpdateDriver) -> Result:
        index, driver = _find(state.drivers, op.driver_id, "driver")
        changes = op.updates.model_dump(exclude_unset=True)
        try:
            state.drivers[index] = Driver.model_validate(
                {**driver.model_dump(), **changes}
            )
        except ValidationError as e:
            raise InvalidUpdate(f"Invalid driver update: {e}") from e
        return Result(
            success=True, message=f"Driver {driver.id} updated", id=driver.id
        )

    def _ban_driver(self, state: Snapshot, op: BanDriver) -> Result:
        _, driver = _find(state.drivers, op.driver_id, "driver")
        if driver.is_banned:
            raise AlreadyBanned("driver", driver.id)
        operator = state.operator(driver.operator_id)
        if operator is None:
            raise OperatorNotFound(driver.operator_id)

        banned = self._ban_record(
            MemberType.DRIVER, driver, op.reason, driver.operator_id
        )
        state.banned_numbers.append(banned)
        driver.is_banned = True

        if operator.settings.bot_rules.auto_remove_from_groups_on_ban:
            for group in state.groups_of(driver.operator_id):
                group.driver_ids = [i for i in group.driver_ids if i != driver.id]

        return Result(
            success=True, message=f"Driver {driver.name} banned", id=banned.id
        )

    # -- clients -------------------------------------------------------------

    def _add_client(self, state: Snapshot, op: AddClient) -> Result:
        _check_phone_for_client(state, op.phone)
        operator = state.operator(op.operator_id)
        if operator is None:
            raise OperatorNotFound(op.operator_id)

        client = Client(
            id=self.id_fn(CLIENT_ID_PREFIX),
            name=op.name,
            phone=op.phone,
            operator_id=op.operator_id,
            added_at=self.now_fn(),
        )
        state.clients.append(client)

        capacity = operator.settings.max_clients_per_group
        groups = state.groups_of(op.operator_id)
        target = next((g for g in groups if len(g.client_ids) < capacity), None)

        if target is not None:
            target.client_ids.append(client.id)
            return Result(
                success=True,
                message=f"Client added to group {target.name}",
                id=client.id,
            )

        sequence_number = len(groups) + 1
        group = Group(
            id=self.id_fn(GROUP_ID_PREFIX),
            name=f"{operator.settings.group_base_name}_{sequence_number}",
            operator_id=op.operator_id,
            sequence_number=sequence_number,
            photo=operator.settings.group_photo,
            driver_ids=[d.id for d in state.drivers_of(op.operator_id)],
            client_ids=[client.id],
            created_at=self.now_fn(),
        )
        state.groups.append(group)
        return Result(
            success=True,
            message=f"Client added. Group {group.name} was created automatically",
            id=client.id,
        )

    def _ban_client(self, state: Snapshot, op: BanClient) -> Result:
        _, client = _find(state.clients, op.client_id, "client")
        if client.is_banned:
            raise AlreadyBanned("client", client.id)
        if state.operator(client.operator_id) is None:
            raise OperatorNotFound(client.operator_id)

        banned = self._ban_record(
            MemberType.CLIENT, client, op.reason, client.operator_id
        )
        state.banned_numbers.append(banned)
        client.is_banned = True

        # group_id is cleared on every client ban, so membership goes too
        for group in state.groups_of(client.operator_id):
            group.client_ids = [i for i in group.client_ids if i != client.id]

        return Result(
            success=True, message=f"Client {client.name} banned", id=banned.id
        )

    # -- bans ----------------------------------------------------------------

    def _ban_record(
        self,
        member_type: MemberType,
        member: Driver | Client,
        reason: str,
        operator_id: str,
    ) -> BannedNumber:
        return BannedNumber(
            id=self.id_fn(BAN_ID_PREFIX),
            phone=member.phone,
            type=member_type,
            name=member.name,
            reason=reason,
            date=self.now_fn(),
            entity_id=member.id,
            operator_id=operator_id,
        )

    def _unban(self, state: Snapshot, op: Unban) -> Result:
        index, banned = _find(
            state.banned_numbers, op.banned_number_id, "banned number"
        )
        members = (
            state.drivers if banned.type == MemberType.DRIVER else state.clients
        )
        for member in members:
            if member.id == banned.entity_id:
                member.is_banned = False

        del state.banned_numbers[index]
        return Result(
            success=True,
            message=f"Ban lifted for {banned.phone}",
            id=banned.entity_id,
        )

    # -- groups --------------------------------------------------------------

    def _add_driver_to_group(self, state: Snapshot, op: AddDriverToGroup) -> Result:
        _, group = _find(state.groups, op.group_id, "group")
        _, driver = _find(state.drivers, op.driver_id, "driver")
        if driver.operator_id != group.operator_id:
            raise EntityNotFound("driver", driver.id)
        if driver.is_banned:
            raise MemberBanned("driver", driver.id)

        if driver.id in group.driver_ids:
            message = f"Driver already in group {group.name}"
        else:
            group.driver_ids.append(driver.id)
            message = f"Driver added to group {group.name}"
        return Result(success=True, message=message, id=driver.id)

    def _add_client_to_group(self, state: Snapshot, op: AddClientToGroup) -> Result:
        _, group = _find(state.groups, op.group_id, "group")
        _, client = _find(state.clients, op.client_id, "client")
        if client.operator_id != group.operator_id:
            raise EntityNotFound("client", client.id)
        if client.is_banned:
            raise MemberBanned("client", client.id)
        if client.id in group.client_ids:
            return Result(
                success=True,
                message=f"Client already in group {group.name}",
                id=client.id,
            )

        operator = state.operator(group.operator_id)
        if operator is None:
            raise OperatorNotFound(group.operator_id)
        capacity = operator.settings.max_clients_per_group
        if len(group.client_ids) >= capacity:
            raise GroupFull(group.name, capacity)

        # a client belongs to at most one group
        for other in state.groups_of(group.operator_id):
            other.client_ids = [i for i in other.client_ids if i != client.id]
        group.client_ids.append(client.id)
        return Result(
            success=True,
            message=f"Client moved to group {group.name}",
            id=client.id,
        )

    def _remove_driver_from_group(
        self, state: Snapshot, op: RemoveDriverFromGroup
    ) -> Result:
        _, group = _find(state.groups, op.group_id, "group")
        if op.driver_id not in group.driver_ids:
            raise EntityNotFound("driver", op.driver_id)
        group.driver_ids = [i for i in group.driver_ids if i != op.driver_id]
        return Result(
            success=True,
            message=f"Driver removed from group {group.name}",
            id=op.driver_id,
        )

    def _remove_client_from_group(
        self, state: Snapshot, op: RemoveClientFromGroup
    ) -> Result:
        _, group = _find(state.groups, op.group_id, "group")
        if op.client_id not in group.client_ids:
            raise EntityNotFound("client", op.client_id)
        group.client_ids = [i for i in group.client_ids if i != op.client_id]
        return Result(
            success=True,
            message=f"Client removed from group {group.name}",
            id=op.client_id,
        )

    # -- operators -----------------------------------------------------------

    def _create_operator(self, state: Snapshot, op: CreateOperator) -> Result:
        operator = Operator(
            id=self.id_fn(OPERATOR_ID_PREFIX),
            name=op.name,
            email=op.email,
            phone=op.phone,
            created_at=self.now_fn(),
        )
        state.operators.append(operator)
        return Result(
            success=True, message="Operator created", id=operator.id
        )

    def _ensure_operator(self, state: Snapshot, op: EnsureOperator) -> Result:
        if state.operator(op.operator_id) is not None:
            return Result(
                success=True,
                message=f"Operator {op.operator_id} already exists",
                id=op.operator_id,
            )

        state.operators.append(
            Operator(
                id=op.operator_id,
                name=op.name,
                email=op.email,
                phone=op.phone,
                created_at=self.now_fn(),
            )
        )
        return Result(
            success=True,
            message=f"Operator {op.operator_id} created on first login",
            id=op.operator_id,
        )

    def _update_operator_settings(
        self, state: Snapshot, op: UpdateOperatorSettings
    ) -> Result:
        index, operator = _find(state.operators, op.operator_id, "operator")
        changes = op.settings.model_dump(exclude_unset=True)
        try:
            settings = OperatorSettings.model_validate(
                {**operator.settings.model_dump(), **changes}
            )
        except ValidationError as e:
            raise InvalidSettings(f"Invalid operator settings: {e}") from e

        fullest = max(
            (len(g.client_ids) for g in state.groups_of(operator.id)), default=0
        )
        if settings.max_clients_per_group < fullest:
            raise InvalidSettings(
                f"maxClientsPerGroup {settings.max_clients_per_group} is below "
                f"the {fullest} clients already in one group"
            )

        state.operators[index] = operator.model_copy(update={"settings": settings})
        return Result(
            success=True,
            message=f"Settings updated for operator {operator.name}",
            id=operator.id,
        )

    def _update_whatsapp_connection(
        self, state: Snapshot, op: UpdateWhatsAppConnection
    ) -> Result:
        _, operator = _find(state.operators, op.operator_id, "operator")
        operator.whatsapp_connection = op.connection.model_copy(deep=True)
        return Result(
            success=True,
            message=f"WhatsApp connection is {op.connection.status}",
            id=operator.id,
        )


def _find(items: list[T], item_id: str, kind: str) -> tuple[int, T]:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index, item
    if kind == "operator":
        raise OperatorNotFound(item_id)
    raise EntityNotFound(kind, item_id)


def _check_phone_for_driver(state: Snapshot, phone: str) -> None:
    if any(d.phone == phone for d in state.drivers):
        raise DuplicatePhone(
            f"Phone {phone} is already registered as a driver",
            existing_type=MemberType.DRIVER,
        )
    if any(c.phone == phone for c in state.clients):
        raise DuplicatePhone(
            f"Phone {phone} is already registered as a client",
            existing_type=MemberType.CLIENT,
        )


def _check_phone_for_client(state: Snapshot, phone: str) -> None:
    existing = next((c for c in state.clients if c.phone == phone), None)
    if existing is not None:
        group = state.group(existing.group_id) if existing.group_id else None
        group_name = group.name if group is not None else "unknown"
        raise DuplicatePhone(
            f"Phone {phone} already exists in group {group_name}",
            existing_type=MemberType.CLIENT,
        )
    if any(d.phone == phone for d in state.drivers):
        raise DuplicatePhone(
            f"Phone {phone} is already registered as a driver",
            existing_type=MemberType.DRIVER,
        )


def _sync_client_groups(state: Snapshot) -> None:
    owner = {}
    for group in state.groups:
        for client_id in group.client_ids:
            owner.setdefault(client_id, group.id)
    for client in state.clients:
        client.group_id = owner.get(client.id)
