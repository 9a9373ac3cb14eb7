"""Users and role-based permissions for the stock web layer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from .config import Settings

ADMIN_ROLE = "admin"
USER_ROLE = "user"
_VALID_ROLES = {ADMIN_ROLE, USER_ROLE}

ROLE_LABELS = {
    ADMIN_ROLE: "Administrator",
    USER_ROLE: "Staff",
}


@dataclass(frozen=True)
class Permissions:
    can_manage_items: bool = False
    can_clear_all: bool = False
    can_load_sample: bool = False
    can_import: bool = False

    @classmethod
    def for_role(cls, role: Optional[str]) -> "Permissions":
        is_admin = role == ADMIN_ROLE
        signed_in = role in _VALID_ROLES
        return cls(
            can_manage_items=signed_in,
            can_clear_all=is_admin,
            can_load_sample=is_admin,
            can_import=signed_in,
        )

    def to_dict(self) -> Dict[str, bool]:
        return {
            "can_manage_items": self.can_manage_items,
            "can_clear_all": self.can_clear_all,
            "can_load_sample": self.can_load_sample,
            "can_import": self.can_import,
        }


@dataclass(frozen=True)
class User:
    """Representation of an authenticated user."""

    username: str
    password_hash: str
    role: str

    @property
    def permissions(self) -> Permissions:
        return Permissions.for_role(self.role)

    def to_public_dict(self) -> Dict[str, object]:
        return {
            "username": self.username,
            "role": self.role,
            "role_label": ROLE_LABELS.get(self.role, self.role),
            "permissions": self.permissions.to_dict(),
        }


class UserDirectory:
    """Fixed set of accounts checked against salted password hashes."""

    def __init__(self, accounts: Iterable[Tuple[str, str, str]]) -> None:
        self._users: Dict[str, User] = {}
        for username, password, role in accounts:
            username = username.strip()
            if not username:
                raise ValueError("Username cannot be empty")
            if role not in _VALID_ROLES:
                raise ValueError(f"Unknown role '{role}'")
            if not password:
                raise ValueError("Password cannot be empty")
            self._users[username] = User(
                username=username,
                password_hash=generate_password_hash(password),
                role=role,
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "UserDirectory":
        return cls(
            [
                (settings.admin_username, settings.admin_password, ADMIN_ROLE),
                (settings.user_username, settings.user_password, USER_ROLE),
            ]
        )

    def get_user(self, username: str) -> User:
        if username not in self._users:
            raise KeyError(f"User '{username}' not found")
        return self._users[username]

    def authenticate(self, username: str, password: str) -> Optional[User]:
        try:
            user = self.get_user(username)
        except KeyError:
            return None
        if user.password_hash and check_password_hash(user.password_hash, password):
            return user
        return None


__all__ = [
    "ADMIN_ROLE",
    "USER_ROLE",
    "ROLE_LABELS",
    "Permissions",
    "User",
    "UserDirectory",
]
