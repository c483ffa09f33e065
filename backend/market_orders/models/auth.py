from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ._ids import new_id


class User(db.Model):
    """
    Staff identities (Administrator or Employee).

    WHY: Every order is attributable to a user row. Staff log in with a
    4-digit PIN that is only ever stored as a salted bcrypt hash, so lookups
    by PIN are a verification scan, never an equality query.

    Market owners are NOT users; they authenticate with their market's phone
    number (see Market).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_created", "role", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)

    # bcrypt hash of the 4-digit PIN
    pin_hash = db.Column(db.String(255), nullable=False)

    # Role.ADMIN or Role.EMPLOYEE (uppercase literal)
    role = db.Column(db.String(16), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
        }
