"""
User model — the account identity and profile.

Each User carries login credentials (email or username plus a hashed
password), personal profile fields, a role and an active flag.

Roles:
  - ADMIN: Administrator
  - EDITOR: Content editor, the default role for new accounts
  - VIEWER: Read-only user

Roles are stored and carried in tokens but not enforced by this service.

Email and username each have a UNIQUE constraint. The database constraint is
the authoritative uniqueness check; service-level lookups only exist to give
a friendlier error before attempting the write.

The password is stored as an Argon2id hash, computed by the account service
before every write that carries a plaintext password. The model itself never
hashes anything.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from abilong_api.database import Base


class UserRole(str, enum.Enum):
    """
    Defines the role a user holds.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Profile ---
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)

    # --- Credentials ---
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.EDITOR,
        nullable=False,
    )

    # Gates login only; inactive users are not deleted
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
