import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from campushub.db.session import Base


class User(Base):
    """Any platform actor: student, institute or admin."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    # Email and phone are optional, but unique when present (NULLs never collide)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(20), nullable=True, unique=True)
    # Null for accounts that sign in through OTP only
    password_hash = Column(Text, nullable=True)
    # student | admin | institute
    role = Column(String(20), nullable=False, default="student")

    # Owned code (institutes/admins). Sparse unique: many users may have none.
    referral_code = Column(String(20), nullable=True, unique=True)
    # Raw code entered at signup; written once and never updated
    referrer_code_used = Column(String(20), nullable=True, index=True)
    referred_by_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    college = Column(String(255), nullable=True)
    course = Column(String(255), nullable=True)
    year = Column(String(10), nullable=True)  # 1 | 2 | 3 | 4 | alumni

    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    # Owner of the code this user signed up with. The reverse side (referrals) is
    # not stored: it is always queried by referred_by_id.
    referred_by = relationship("User", remote_side=[id], foreign_keys=[referred_by_id])
