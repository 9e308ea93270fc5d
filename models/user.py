from models.db import db
from utils.clock import shelter_now

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

# ordered: green < blue < orange
EXPERIENCE_LEVELS = ("green", "blue", "orange")


def level_rank(level: str) -> int:
    return EXPERIENCE_LEVELS.index(level)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), nullable=True)

    # changed only through an approved ExperienceRequest
    experience_level = db.Column(db.String(10), nullable=False, default="green")

    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    last_activity_at = db.Column(db.DateTime, default=shelter_now, nullable=True)
    terms_accepted_at = db.Column(db.DateTime, default=shelter_now, nullable=False)
    deactivated_at = db.Column(db.DateTime, nullable=True)
    deactivation_reason = db.Column(db.String(120), nullable=True)
    reactivated_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=shelter_now, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    __table_args__ = (
        db.CheckConstraint("experience_level IN ('green', 'blue', 'orange')", name="ck_users_experience_level"),
        db.Index("ix_users_activity", "is_active", "last_activity_at"),
    )

    @property
    def role_names(self) -> frozenset:
        return frozenset(r.name for r in self.roles)

    @property
    def is_admin(self) -> bool:
        return "ADMIN" in self.role_names

    @property
    def is_super_admin(self) -> bool:
        return "SUPER_ADMIN" in self.role_names


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # WALKER, ADMIN, SUPER_ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
