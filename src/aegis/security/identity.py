"""Identity resolution.

Users are configured statically (``AEGIS_USERS="name:role,..."``). A request
names its user either with the ``x-user`` header or with a ``Bearer`` token
equal to the user name. Anything else is anonymous and rejected upstream
with 401.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from aegis.security.rbac import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class User:
    """An authenticated caller."""

    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def parse_users(spec: str) -> dict[str, User]:
    """Parse "name:role,name:role" into a user table.

    Raises ValueError on a malformed entry or unknown role.
    """
    users: dict[str, User] = {}
    for entry in spec.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, role = entry.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Malformed user entry: {entry!r}")
        role = Role(role.strip()).value
        users[name.strip()] = User(id=name.strip(), role=role)
    return users


class IdentityResolver:
    """Maps request headers to a configured User."""

    def __init__(self, users: Mapping[str, User]):
        self.users = dict(users)

    @classmethod
    def from_spec(cls, spec: str) -> "IdentityResolver":
        return cls(parse_users(spec))

    def resolve(self, headers: Mapping[str, str]) -> User | None:
        """User named by the request, or None if missing or unknown."""
        name = headers.get("x-user")
        if not name:
            authorization = headers.get("authorization", "")
            if authorization.startswith("Bearer "):
                name = authorization[7:].strip()
        if not name:
            return None

        user = self.users.get(name)
        if user is None:
            logger.info(f"Rejected unknown user {name!r}")
        return user
