import logging
from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI, HTTPException, Request

from driverflow.constants import API_TITLE, API_VERSION, LOG_LEVEL, SEED_DEMO_DATA
from driverflow.database import InMemorySnapshotStore
from driverflow.engine import MembershipEngine
from driverflow.errors import ErrorCode
from driverflow.models import CamelModel, Result, Snapshot, WhatsAppConnection
from driverflow.operations import (
    AddClient,
    AddClientToGroup,
    AddDriver,
    AddDriverToGroup,
    BanClient,
    BanDriver,
    CreateOperator,
    DriverUpdate,
    EnsureOperator,
    Operation,
    RemoveClientFromGroup,
    RemoveDriverFromGroup,
    SettingsUpdate,
    Unban,
    UpdateDriver,
    UpdateOperatorSettings,
    UpdateWhatsAppConnection,
)
from driverflow.seed import demo_snapshot
from driverflow.stats import operator_stats, platform_stats

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_BY_CODE = {
    ErrorCode.DUPLICATE_PHONE: 409,
    ErrorCode.ALREADY_BANNED: 409,
    ErrorCode.OPERATOR_NOT_FOUND: 404,
    ErrorCode.ENTITY_NOT_FOUND: 404,
    ErrorCode.INVALID_SETTINGS: 422,
    ErrorCode.INVALID_UPDATE: 422,
    ErrorCode.MEMBER_BANNED: 409,
    ErrorCode.GROUP_FULL: 409,
}


class CreateOperatorRequest(CamelModel):
    name: str
    email: str
    phone: str


class OperatorSessionRequest(CamelModel):
    name: str
    email: str
    phone: str = ""


class AddDriverRequest(CamelModel):
    phone: str
    name: str
    document: str
    photo: str | None = None


class AddClientRequest(CamelModel):
    phone: str
    name: str


class BanRequest(CamelModel):
    reason: str


def _dump(model: CamelModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _store(request: Request) -> InMemorySnapshotStore:
    return request.app.state.store


def _snapshot(request: Request) -> Snapshot:
    return _store(request).load()


def _run(request: Request, operation: Operation) -> Result:
    result = _store(request).apply(request.app.state.engine, operation)
    if not result.success:
        raise HTTPException(
            status_code=STATUS_BY_CODE.get(result.code, 400),
            detail=result.message,
        )
    return result


def _outcome(result: Result, key: str | None = None, entity=None) -> dict:
    body = _dump(result)
    if key is not None and entity is not None:
        body[key] = _dump(entity)
    return body


def _require_operator(request: Request, operator_id: str) -> None:
    if _snapshot(request).operator(operator_id) is None:
        raise HTTPException(status_code=404, detail="Operator not found")


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


# -- operators ---------------------------------------------------------------


@router.get("/operators")
async def list_operators(request: Request) -> list[dict]:
    return [_dump(o) for o in _snapshot(request).operators]


@router.post("/operators", status_code=201)
async def create_operator(body: CreateOperatorRequest, request: Request) -> dict:
    result = _run(
        request, CreateOperator(name=body.name, email=body.email, phone=body.phone)
    )
    return _outcome(result, "operator", _snapshot(request).operator(result.id))


@router.get("/operators/{operator_id}")
async def get_operator(operator_id: str, request: Request) -> dict:
    operator = _snapshot(request).operator(operator_id)
    if operator is None:
        raise HTTPException(status_code=404, detail="Operator not found")
    return _dump(operator)


@router.put("/operators/{operator_id}/session")
async def open_operator_session(
    operator_id: str, body: OperatorSessionRequest, request: Request
) -> dict:
    result = _run(
        request,
        EnsureOperator(
            operator_id=operator_id,
            name=body.name,
            email=body.email,
            phone=body.phone,
        ),
    )
    return _outcome(result, "operator", _snapshot(request).operator(operator_id))


@router.patch("/operators/{operator_id}/settings")
async def update_operator_settings(
    operator_id: str, body: SettingsUpdate, request: Request
) -> dict:
    result = _run(
        request, UpdateOperatorSettings(operator_id=operator_id, settings=body)
    )
    operator = _snapshot(request).operator(operator_id)
    return _outcome(result, "settings", operator.settings)


@router.put("/operators/{operator_id}/whatsapp")
async def update_whatsapp_connection(
    operator_id: str, body: WhatsAppConnection, request: Request
) -> dict:
    result = _run(
        request,
        UpdateWhatsAppConnection(operator_id=operator_id, connection=body),
    )
    return _outcome(result, "whatsappConnection", body)


@router.get("/operators/{operator_id}/stats")
async def get_operator_stats(operator_id: str, request: Request) -> dict:
    stats = operator_stats(_snapshot(request), operator_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="Operator not found")
    return _dump(stats)


@router.get("/stats")
async def get_platform_stats(request: Request) -> dict:
    return _dump(platform_stats(_snapshot(request)))


# -- drivers -----------------------------------------------------------------


@router.get("/operators/{operator_id}/drivers")
async def list_drivers(operator_id: str, request: Request) -> list[dict]:
    _require_operator(request, operator_id)
    return [_dump(d) for d in _snapshot(request).drivers_of(operator_id)]


@router.post("/operators/{operator_id}/drivers", status_code=201)
async def add_driver(
    operator_id: str, body: AddDriverRequest, request: Request
) -> dict:
    result = _run(
        request,
        AddDriver(
            operator_id=operator_id,
            phone=body.phone,
            name=body.name,
            document=body.document,
            photo=body.photo,
        ),
    )
    return _outcome(result, "driver", _snapshot(request).driver(result.id))


@router.patch("/drivers/{driver_id}")
async def update_driver(
    driver_id: str, body: DriverUpdate, request: Request
) -> dict:
    result = _run(request, UpdateDriver(driver_id=driver_id, updates=body))
    return _outcome(result, "driver", _snapshot(request).driver(driver_id))


@router.post("/drivers/{driver_id}/ban", status_code=201)
async def ban_driver(driver_id: str, body: BanRequest, request: Request) -> dict:
    result = _run(request, BanDriver(driver_id=driver_id, reason=body.reason))
    return _outcome(
        result, "bannedNumber", _snapshot(request).banned_number(result.id)
    )


# -- clients -----------------------------------------------------------------


@router.get("/operators/{operator_id}/clients")
async def list_clients(operator_id: str, request: Request) -> list[dict]:
    _require_operator(request, operator_id)
    return [_dump(c) for c in _snapshot(request).clients_of(operator_id)]


@router.post("/operators/{operator_id}/clients", status_code=201)
async def add_client(
    operator_id: str, body: AddClientRequest, request: Request
) -> dict:
    result = _run(
        request,
        AddClient(operator_id=operator_id, phone=body.phone, name=body.name),
    )
    return _outcome(result, "client", _snapshot(request).client(result.id))


@router.post("/clients/{client_id}/ban", status_code=201)
async def ban_client(client_id: str, body: BanRequest, request: Request) -> dict:
    result = _run(request, BanClient(client_id=client_id, reason=body.reason))
    return _outcome(
        result, "bannedNumber", _snapshot(request).banned_number(result.id)
    )


# -- groups ------------------------------------------------------------------


@router.get("/operators/{operator_id}/groups")
async def list_groups(operator_id: str, request: Request) -> list[dict]:
    _require_operator(request, operator_id)
    return [_dump(g) for g in _snapshot(request).groups_of(operator_id)]


@router.get("/groups/{group_id}")
async def get_group(group_id: str, request: Request) -> dict:
    group = _snapshot(request).group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return _dump(group)


@router.post("/groups/{group_id}/drivers/{driver_id}")
async def add_driver_to_group(
    group_id: str, driver_id: str, request: Request
) -> dict:
    result = _run(request, AddDriverToGroup(group_id=group_id, driver_id=driver_id))
    return _outcome(result, "group", _snapshot(request).group(group_id))


@router.post("/groups/{group_id}/clients/{client_id}")
async def add_client_to_group(
    group_id: str, client_id: str, request: Request
) -> dict:
    result = _run(request, AddClientToGroup(group_id=group_id, client_id=client_id))
    return _outcome(result, "group", _snapshot(request).group(group_id))


@router.delete("/groups/{group_id}/drivers/{driver_id}")
async def remove_driver_from_group(
    group_id: str, driver_id: str, request: Request
) -> dict:
    result = _run(
        request, RemoveDriverFromGroup(group_id=group_id, driver_id=driver_id)
    )
    return _outcome(result, "group", _snapshot(request).group(group_id))


@router.delete("/groups/{group_id}/clients/{client_id}")
async def remove_client_from_group(
    group_id: str, client_id: str, request: Request
) -> dict:
    result = _run(
        request, RemoveClientFromGroup(group_id=group_id, client_id=client_id)
    )
    return _outcome(result, "group", _snapshot(request).group(group_id))


# -- bans --------------------------------------------------------------------


@router.get("/operators/{operator_id}/banned-numbers")
async def list_banned_numbers(operator_id: str, request: Request) -> list[dict]:
    _require_operator(request, operator_id)
    return [_dump(b) for b in _snapshot(request).banned_numbers_of(operator_id)]


@router.delete("/banned-numbers/{banned_number_id}")
async def unban(banned_number_id: str, request: Request) -> dict:
    return _dump(_run(request, Unban(banned_number_id=banned_number_id)))


# -- batch -------------------------------------------------------------------


@router.post("/operations")
async def apply_operations(
    operations: list[Operation], request: Request
) -> list[dict]:
    """
    Apply operations in order. Each one is committed or rejected on its
    own; a rejection does not stop the rest of the batch.
    """
    store = _store(request)
    engine = request.app.state.engine
    return [_dump(store.apply(engine, op)) for op in operations]


def create_app(snapshot: Snapshot | None = None) -> FastAPI:
    logging.getLogger("driverflow").setLevel(LOG_LEVEL)

    app = FastAPI(title=API_TITLE, version=API_VERSION)
    if snapshot is None and SEED_DEMO_DATA:
        snapshot = demo_snapshot()
        logger.info("Seeded %d demo operators", len(snapshot.operators))

    app.state.store = InMemorySnapshotStore(snapshot)
    app.state.now_fn = lambda: datetime.now(UTC)
    app.state.engine = MembershipEngine(now_fn=lambda: app.state.now_fn())

    app.include_router(router)
    return app
