"""
Errors raised by the membership engine.

Engine operations raise these; ``MembershipEngine.apply`` turns them into a
failed ``Result`` and hands back the snapshot it was given.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    DUPLICATE_PHONE = "duplicate_phone"
    OPERATOR_NOT_FOUND = "operator_not_found"
    ENTITY_NOT_FOUND = "entity_not_found"
    ALREADY_BANNED = "already_banned"
    INVALID_SETTINGS = "invalid_settings"
    INVALID_UPDATE = "invalid_update"
    MEMBER_BANNED = "member_banned"
    GROUP_FULL = "group_full"


class MembershipError(Exception):
    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DuplicatePhone(MembershipError):
    code = ErrorCode.DUPLICATE_PHONE

    def __init__(self, message: str, *, existing_type: str) -> None:
        super().__init__(message)
        self.existing_type = existing_type


class OperatorNotFound(MembershipError):
    code = ErrorCode.OPERATOR_NOT_FOUND

    def __init__(self, operator_id: str) -> None:
        super().__init__(f"Operator {operator_id} not found")
        self.operator_id = operator_id


class EntityNotFound(MembershipError):
    code = ErrorCode.ENTITY_NOT_FOUND

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind.capitalize()} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidSettings(MembershipError):
    code = ErrorCode.INVALID_SETTINGS


class AlreadyBanned(MembershipError):
    code = ErrorCode.ALREADY_BANNED

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind.capitalize()} {entity_id} is already banned")
        self.kind = kind
        self.entity_id = entity_id


class InvalidUpdate(MembershipError):
    code = ErrorCode.INVALID_UPDATE


class MemberBanned(MembershipError):
    code = ErrorCode.MEMBER_BANNED

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(
            f"{kind.capitalize()} {entity_id} is banned and cannot join a group"
        )
        self.kind = kind
        self.entity_id = entity_id


class GroupFull(MembershipError):
    code = ErrorCode.GROUP_FULL

    def __init__(self, group_name: str, capacity: int) -> None:
        super().__init__(f"Group {group_name} already has {capacity} clients")
        self.group_name = group_name
        self.capacity = capacity
