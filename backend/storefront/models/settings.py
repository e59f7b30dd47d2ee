from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class StoreSetting(db.Model):
    """
    Key-value settings for the storefront.

    Only overridden keys are stored; settings_service merges them over the
    built-in defaults.
    """
    __tablename__ = "store_settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_store_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.JSON, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "value": self.value,
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": to_utc_z(self.updated_at),
        }
