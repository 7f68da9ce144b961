from wallet.errors import Unauthorized
from wallet.models import AdminActor, AdminRole, Capability


ROLE_CAPABILITIES: dict[AdminRole, frozenset[Capability]] = {
    AdminRole.SUPERADMIN: frozenset(Capability),
    AdminRole.ADMIN: frozenset({
        Capability.USERS,
        Capability.DEPOSITS,
        Capability.WITHDRAWS,
        Capability.NOTIFICATIONS,
    }),
    AdminRole.MODERATOR: frozenset({Capability.DEPOSITS, Capability.WITHDRAWS}),
    AdminRole.SUPPORT: frozenset({Capability.USERS}),
}


def has_capability(role: AdminRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def require_capability(actor: AdminActor, capability: Capability) -> None:
    if not actor.is_active:
        raise Unauthorized(f"Admin {actor.username} is disabled")
    if not has_capability(actor.role, capability):
        raise Unauthorized(f"Role {actor.role.value} lacks the {capability.value} capability")
