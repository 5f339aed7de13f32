from __future__ import annotations

from ..extensions import db
from ..roles import Role, UserStatus
from craftmarket.time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Marketplace account: customers, artisans, merchants and admins.

    WHY: Every cart, order and address hangs off a user. Role and status are
    separate columns: role says what the account may do, status says whether
    it may do anything at all.

    SECURITY NOTES:
    - password_hash is bcrypt; plaintext never reaches this table
    - otp_hash is SHA-256 of the emailed one-time code
    - to_dict() never emits password or OTP material
    - email, mobile and username uniqueness is enforced here, not only in code
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_status", "role", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    mobile = db.Column(db.String(20), nullable=True, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(50), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    gender = db.Column(db.String(16), nullable=True)  # male, female, other
    image_url = db.Column(db.String(512), nullable=True)

    # Identity from an external provider (e.g. Google subject id)
    external_id = db.Column(db.String(255), nullable=True, index=True)

    role = db.Column(db.String(16), nullable=False, default=Role.CUSTOMER.value)
    # Pending elevation awaiting admin approval
    requested_role = db.Column(db.String(16), nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=UserStatus.PENDING.value, index=True)

    # Email verification
    otp_hash = db.Column(db.String(64), nullable=True)
    otp_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "mobile": self.mobile,
            "full_name": self.full_name,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender,
            "image_url": self.image_url,
            "external_id": self.external_id,
            "role": self.role,
            "requested_role": self.requested_role,
            "status": self.status,
            "verified_at": to_utc_z(self.verified_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class Address(db.Model):
    """Shipping address owned by a user."""
    __tablename__ = "addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    street = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    zip = db.Column(db.String(20), nullable=False)
    country = db.Column(db.String(100), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("addresses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
            "is_default": self.is_default,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ArtisanProfile(db.Model):
    """
    Public storefront of an artisan account. At most one per user.

    images holds a list of JSON objects ({"url": ..., "caption": ...});
    upload and storage of the files themselves happen elsewhere.
    """
    __tablename__ = "artisan_profiles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    name = db.Column(db.String(50), nullable=False)
    tag_line = db.Column(db.String(100), nullable=True)
    district = db.Column(db.String(50), nullable=False)
    city = db.Column(db.String(50), nullable=False)
    product_type = db.Column(db.String(50), nullable=False)
    social_media = db.Column(db.String(255), nullable=True)
    about = db.Column(db.String(500), nullable=True)
    images = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("artisan_profile", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "tag_line": self.tag_line,
            "district": self.district,
            "city": self.city,
            "product_type": self.product_type,
            "social_media": self.social_media,
            "about": self.about,
            "images": self.images or [],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
