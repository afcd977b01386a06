"""
Role-based access control for privileged pool and oracle operations.

The authenticated caller identity is supplied by the transaction layer as
an explicit argument; this module only checks it against stored roles.
Addresses are compared case-insensitively.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum

from ..exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class Role(Enum):
    """Standard roles for protocol access control."""
    ADMIN = "admin"


@dataclass
class AccessControl:
    """
    Role registry keyed by normalized address.

    Usage:
        ac = AccessControl(admin_address="0xadmin")
        ac.require_admin(caller)
    """

    admin_address: str = ""
    roles: dict[str, set[str]] = field(default_factory=dict)
    audit_log: list[dict] = field(default_factory=list)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        if not self.admin_address:
            raise UnauthorizedError("An admin address is required")
        self.admin_address = self.admin_address.lower()
        for role in Role:
            self.roles.setdefault(role.value, set())
        self.roles[Role.ADMIN.value].add(self.admin_address)

    def has_role(self, address: str, role: Role) -> bool:
        with self._lock:
            return address.lower() in self.roles.get(role.value, set())

    def is_admin(self, address: str) -> bool:
        return self.has_role(address, Role.ADMIN)

    def require_role(self, caller: str, role: Role) -> None:
        if not caller or not self.has_role(caller, role):
            logger.warning(
                "Unauthorized call rejected",
                extra={
                    "event": "access_control.unauthorized",
                    "caller": (caller or "")[:10],
                    "role": role.value,
                },
            )
            raise UnauthorizedError(
                f"Caller lacks role {role.value}",
                details={"caller": caller, "role": role.value},
            )

    def require_admin(self, caller: str) -> None:
        self.require_role(caller, Role.ADMIN)

    def grant_role(self, caller: str, role: Role, address: str) -> None:
        """Grant a role. Admin only."""
        with self._lock:
            self.require_admin(caller)
            self.roles[role.value].add(address.lower())
            self._log_action(caller, "grant_role", {"role": role.value, "address": address})

    def revoke_role(self, caller: str, role: Role, address: str) -> None:
        """Revoke a role. Admin only; the last admin cannot be removed."""
        with self._lock:
            self.require_admin(caller)
            members = self.roles[role.value]
            if role is Role.ADMIN and members == {address.lower()}:
                raise UnauthorizedError("Cannot revoke the last admin")
            members.discard(address.lower())
            self._log_action(caller, "revoke_role", {"role": role.value, "address": address})

    def _log_action(self, actor: str, action: str, details: dict) -> None:
        self.audit_log.append({"actor": actor.lower(), "action": action, "details": details})
        if len(self.audit_log) > 1000:
            self.audit_log = self.audit_log[-1000:]
        logger.info(
            "Access control updated",
            extra={"event": f"access_control.{action}", "actor": actor[:10]},
        )
