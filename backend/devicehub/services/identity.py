"""
Identity Store service: account creation, lookup and role-scoped management.

Phone numbers are the login identity. They are normalized to the bare
10-digit Indian mobile form before any lookup or write, so "+91 98765-43210"
and "9876543210" are the same account.
"""
import logging
import re
import uuid
from typing import List, Optional, Tuple

from devicehub.core.errors import Forbidden, InvalidInput, InvalidPhone, InvalidRole, UserNotFound
from devicehub.core.roles import Role, creatable_roles, deletable_roles, parse_role, visible_roles
from devicehub.repositories.base import UserRecord, UserRepository

logger = logging.getLogger("uvicorn.error")

PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")


def format_phone(raw: str) -> str:
    """Strip spaces, dashes and a leading +91 / 91 country prefix."""
    digits = re.sub(r"[\s\-()]", "", raw or "")
    if digits.startswith("+91"):
        digits = digits[3:]
    elif digits.startswith("91") and len(digits) == 12:
        digits = digits[2:]
    return digits


def validate_phone(raw: str) -> str:
    """Return the normalized phone or raise InvalidPhone."""
    phone = format_phone(raw)
    if not PHONE_PATTERN.match(phone):
        raise InvalidPhone()
    return phone


class IdentityService:

    def __init__(self, users: UserRepository):
        self.users = users

    async def signup(self, name: str, phone: str, email: Optional[str] = None) -> UserRecord:
        """Self-service registration. Always creates a customer."""
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Name is required")
        user = await self.users.create(name, validate_phone(phone), email or None, Role.CUSTOMER)
        logger.info("[identity] signup id=%s phone=%s", user.id, user.phone)
        return user

    async def create_user(
        self,
        actor: UserRecord,
        name: str,
        phone: str,
        email: Optional[str] = None,
        role=Role.CUSTOMER,
    ) -> UserRecord:
        """
        Create an account on behalf of an administrator.

        An admin may only create customers. A superadmin may create customers
        and admins; superadmin accounts are never created through this path.
        """
        target = parse_role(role)
        allowed = creatable_roles(actor.role)
        if target not in allowed:
            if actor.role is Role.SUPERADMIN:
                raise InvalidRole("Invalid role. Allowed: customer, admin")
            raise Forbidden(f"{actor.role.value} cannot create {target.value} accounts")
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Name is required")
        user = await self.users.create(name, validate_phone(phone), email or None, target)
        logger.info("[identity] %s %s created %s id=%s", actor.role.value, actor.id, target.value, user.id)
        return user

    async def get(self, user_id: uuid.UUID) -> UserRecord:
        user = await self.users.get(user_id)
        if not user:
            raise UserNotFound()
        return user

    async def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        return await self.users.get_by_phone(validate_phone(phone))

    async def list_users(
        self,
        actor: UserRecord,
        q: Optional[str] = None,
        role: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[UserRecord], int]:
        """Admins see customers only; superadmins see every account."""
        roles = visible_roles(actor.role)
        if role:
            wanted = parse_role(role)
            roles = roles & frozenset({wanted})
        if not roles:
            return [], 0
        return await self.users.list(roles, q=q, offset=offset, limit=limit)

    async def get_user(self, actor: UserRecord, user_id: uuid.UUID) -> UserRecord:
        user = await self.users.get(user_id)
        # Accounts outside the actor's visible roles are reported as missing
        if not user or user.role not in visible_roles(actor.role):
            raise UserNotFound()
        return user

    async def change_role(self, actor: UserRecord, user_id: uuid.UUID, role) -> UserRecord:
        target_role = parse_role(role)
        if actor.id == user_id:
            raise InvalidInput("Cannot change your own role")
        user = await self.get(user_id)
        await self.users.update_role(user_id, target_role)
        logger.warning(
            "[identity] role change user=%s %s -> %s by %s",
            user_id, user.role.value, target_role.value, actor.id,
        )
        user.role = target_role
        return user

    async def delete_user(self, actor: UserRecord, user_id: uuid.UUID) -> None:
        if actor.id == user_id:
            raise InvalidInput("Cannot delete your own account")
        user = await self.get(user_id)
        if user.role not in deletable_roles(actor.role):
            raise Forbidden(f"{actor.role.value} cannot delete {user.role.value} accounts")
        await self.users.delete(user_id)
        logger.warning("[identity] deleted %s %s (%s) by %s", user.role.value, user.id, user.phone, actor.id)

    async def list_customers(self, exclude_id: Optional[uuid.UUID] = None) -> List[UserRecord]:
        """Customer directory used when picking a share recipient."""
        rows, _ = await self.users.list(frozenset({Role.CUSTOMER}), offset=0, limit=10000)
        rows = [u for u in rows if u.id != exclude_id]
        rows.sort(key=lambda u: u.name.lower())
        return rows

    async def count_by_role(self) -> dict:
        return await self.users.count_by_role()
