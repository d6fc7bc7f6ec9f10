# devicehub/core/bootstrap.py
"""
Bootstrap module for application initialization.
Creates the default superadmin/admin accounts on first startup.
"""
import os
import logging

from devicehub.core.errors import AppError
from devicehub.core.roles import Role
from devicehub.repositories.base import UserRepository
from devicehub.services.identity import format_phone, PHONE_PATTERN

logger = logging.getLogger("uvicorn.error")

DEFAULT_ACCOUNTS = (
    # (role, phone env var, name env var, default name)
    (Role.SUPERADMIN, "SUPERADMIN_PHONE", "SUPERADMIN_NAME", "Super Admin"),
    (Role.ADMIN, "ADMIN_PHONE", "ADMIN_NAME", "Admin"),
)


async def ensure_default_accounts(users: UserRepository) -> None:
    """
    If no account of a given role exists, create one from environment variables.
    Only takes effect under the following conditions:
      - Currently no user with that role
      - And <ROLE>_PHONE is set to a valid mobile number not used by someone else
    Environment variables:
      SUPERADMIN_PHONE / SUPERADMIN_NAME
      ADMIN_PHONE      / ADMIN_NAME
    """
    counts = await users.count_by_role()
    for role, phone_var, name_var, default_name in DEFAULT_ACCOUNTS:
        if counts.get(role.value, 0):
            continue  # Skip creation if the role already has an account

        raw_phone = os.getenv(phone_var)
        if not raw_phone:
            logger.warning("[bootstrap] No %s present, but %s not set -> skip creating default %s.",
                           role.value, phone_var, role.value)
            continue

        phone = format_phone(raw_phone)
        if not PHONE_PATTERN.match(phone):
            logger.warning("[bootstrap] %s=%r is not a valid mobile number -> skip.", phone_var, raw_phone)
            continue
        if await users.get_by_phone(phone):
            logger.warning("[bootstrap] %s phone %s already belongs to another account -> skip.",
                           role.value, phone)
            continue

        try:
            u = await users.create(os.getenv(name_var, default_name), phone, None, role)
        except AppError as e:
            logger.warning("[bootstrap] could not create default %s: %s", role.value, e.message)
            continue
        logger.warning("[bootstrap] Created default %s -> name=%s phone=%s id=%s",
                       role.value, u.name, u.phone, u.id)
