from dataclasses import dataclass

WALKER = "WALKER"
ADMIN = "ADMIN"
SUPER_ADMIN = "SUPER_ADMIN"

ALLOWED_ROLES = {WALKER, ADMIN, SUPER_ADMIN}
ADMIN_ROLES = frozenset({ADMIN, SUPER_ADMIN})


def filter_role_names(roles):
    names = []
    for role in roles or []:
        name = role if isinstance(role, str) else getattr(role, "name", None)
        if name in ALLOWED_ROLES:
            names.append(name)
    return names


@dataclass(frozen=True)
class Actor:
    """
    Already-authenticated identity handed to the services by the request layer.
    Role flags are resolved once here instead of being re-read from the user row.
    """
    user_id: int
    roles: frozenset = frozenset()

    @property
    def is_admin(self) -> bool:
        return bool(self.roles & ADMIN_ROLES)

    @property
    def is_super_admin(self) -> bool:
        return SUPER_ADMIN in self.roles

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, roles=frozenset(filter_role_names(user.roles)))
