from models import db
from models.user import User, Role, EXPERIENCE_LEVELS
from services.errors import UserNotFound
from utils.clock import shelter_now
from utils.roles import ADMIN_ROLES


class UserDirectory:
    """Data access for walker accounts. Callers own the transaction."""

    def __init__(self, clock=shelter_now):
        self.clock = clock

    def get(self, user_id: int):
        return User.query.get(user_id)

    def require(self, user_id: int) -> User:
        user = self.get(user_id)
        if user is None:
            raise UserNotFound(user_id=user_id)
        return user

    def get_for_update(self, user_id: int):
        # Row lock on backends that support it; serialises one walker's own bookings
        return (
            User.query
            .filter_by(id=user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def touch_activity(self, user: User, when=None) -> None:
        user.last_activity_at = when or self.clock()

    def set_experience_level(self, user: User, level: str) -> None:
        if level not in EXPERIENCE_LEVELS:
            raise ValueError(f"Unknown experience level: {level}")
        user.experience_level = level

    def deactivate(self, user: User, reason: str, when=None) -> bool:
        if not user.is_active:
            return False
        user.is_active = False
        user.deactivated_at = when or self.clock()
        user.deactivation_reason = reason
        return True

    def activate(self, user: User, when=None) -> None:
        when = when or self.clock()
        user.is_active = True
        user.reactivated_at = when
        user.last_activity_at = when
        user.deactivated_at = None
        user.deactivation_reason = None

    def dormant_users(self, cutoff):
        """
        Active non-admin accounts whose last activity is strictly before ``cutoff``.
        Accounts that never recorded activity fall back to their creation time.
        """
        last_seen = db.func.coalesce(User.last_activity_at, User.created_at)
        return (
            User.query
            .filter(User.is_active.is_(True))
            .filter(~User.roles.any(Role.name.in_(sorted(ADMIN_ROLES))))
            .filter(last_seen < cutoff)
            .order_by(User.id.asc())
            .all()
        )
