from models import db
from models.user import Role
from models.system_setting import SystemSetting
from services.policy_store import DEFAULT_SETTINGS
from utils.roles import WALKER, ADMIN, SUPER_ADMIN

DEFAULT_ROLES = [WALKER, ADMIN, SUPER_ADMIN]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_settings():
    # only fills missing keys; an admin's values are never overwritten here
    existing = {s.key for s in SystemSetting.query.all()}
    for key, value in DEFAULT_SETTINGS.items():
        if key not in existing:
            db.session.add(SystemSetting(key=key, value=str(value)))
    db.session.commit()
