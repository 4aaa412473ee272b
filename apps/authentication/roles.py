"""Caller roles and the capability set derived from them.

Capabilities are computed once per request from the caller's role and passed
to the campaign state machine, so no code path inspects role strings directly.
"""
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = 'super_admin'
    ADMIN = 'admin'
    MANAGER = 'manager'
    AGENT = 'agent'
    VIEWER = 'viewer'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            return cls.VIEWER


AUTO_APPROVE_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER})
APPROVER_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER})
WRITER_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER, Role.AGENT})
TENANT_WIDE_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER, Role.VIEWER})


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    tenant_id: int
    role: Role
    can_auto_approve: bool = False
    can_approve: bool = False
    can_view_all: bool = False
    can_write: bool = False

    @classmethod
    def for_role(cls, role, user_id, tenant_id):
        role = role if isinstance(role, Role) else Role.parse(role)
        return cls(
            user_id=user_id,
            tenant_id=tenant_id,
            role=role,
            can_auto_approve=role in AUTO_APPROVE_ROLES,
            can_approve=role in APPROVER_ROLES,
            can_view_all=role in TENANT_WIDE_ROLES,
            can_write=role in WRITER_ROLES,
        )

    @classmethod
    def from_user(cls, user):
        return cls.for_role(user.role, user_id=user.pk, tenant_id=user.tenant_id)
