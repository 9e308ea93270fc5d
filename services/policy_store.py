from dataclasses import dataclass

from models.system_setting import SystemSetting
from security.rbac import require_admin
from services.errors import InvalidSettingValue, UnknownSetting
from services.transaction import atomic
from utils.audit import log_event

BOOKING_ADVANCE_DAYS = "booking_advance_days"
CANCELLATION_NOTICE_HOURS = "cancellation_notice_hours"
AUTO_DEACTIVATION_DAYS = "auto_deactivation_days"

DEFAULT_SETTINGS = {
    BOOKING_ADVANCE_DAYS: 14,
    CANCELLATION_NOTICE_HOURS: 12,
    AUTO_DEACTIVATION_DAYS: 365,
}


@dataclass(frozen=True)
class PolicySnapshot:
    booking_advance_days: int
    cancellation_notice_hours: int
    auto_deactivation_days: int


def _coerce(key: str, value) -> int:
    if key not in DEFAULT_SETTINGS:
        raise UnknownSetting(f"Unknown setting: {key}", key=key)
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidSettingValue(key=key)
    if number < 0:
        raise InvalidSettingValue(key=key)
    return number


class PolicyStore:
    """
    Tunable scheduling parameters kept in ``system_settings``.

    Nothing is cached: callers take a ``snapshot()`` at the start of each
    transaction and use only that for the rest of the unit of work.
    """

    def _rows(self):
        return {row.key: row.value for row in SystemSetting.query.all()}

    def get(self, key: str) -> int:
        if key not in DEFAULT_SETTINGS:
            raise UnknownSetting(f"Unknown setting: {key}", key=key)
        row = SystemSetting.query.get(key)
        if row is None:
            return DEFAULT_SETTINGS[key]
        return _coerce(key, row.value)

    def all(self) -> dict:
        stored = self._rows()
        return {
            key: _coerce(key, stored[key]) if key in stored else default
            for key, default in DEFAULT_SETTINGS.items()
        }

    def snapshot(self) -> PolicySnapshot:
        return PolicySnapshot(**self.all())

    def set(self, actor, key: str, value) -> int:
        require_admin(actor)
        number = _coerce(key, value)
        with atomic() as session:
            row = SystemSetting.query.get(key)
            if row is None:
                session.add(SystemSetting(key=key, value=str(number)))
            else:
                row.value = str(number)
            log_event("SETTING_UPDATE", user_id=actor.user_id, entity="setting", entity_id=key,
                      metadata={"value": number})
        return number

    def reset_defaults(self, actor=None) -> dict:
        """Restore the fixed default table. ``actor=None`` is the CLI/bootstrap path."""
        if actor is not None:
            require_admin(actor)
        with atomic() as session:
            existing = {row.key: row for row in SystemSetting.query.all()}
            for key, default in DEFAULT_SETTINGS.items():
                if key in existing:
                    existing[key].value = str(default)
                else:
                    session.add(SystemSetting(key=key, value=str(default)))
            log_event("SETTINGS_RESET", user_id=actor.user_id if actor else None, entity="setting")
        return dict(DEFAULT_SETTINGS)
