"""
User model - students and admins of the quiz application.

Users are created and updated by the sign-in flow; the reporting service
only reads them. Externally authenticated accounts carry the identity
provider's email and display name next to the self-reported profile.
"""

import uuid
from sqlalchemy import Column, Text, DateTime, String, Boolean, Index
from sqlalchemy.orm import relationship
from quiz_admin.database import Base, utc_now


class User(Base):
    """
    SQLAlchemy model for the users table.

    ``role`` is immutable after creation. ``is_active`` gates visibility
    in every admin listing.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique user identifier")
    role = Column(String(16), nullable=False, default="student",
                  doc="student | admin")
    student_name = Column(Text, nullable=True,
                          doc="Self-reported student name")
    student_id = Column(Text, nullable=True,
                        doc="Student identifier issued by the institution")
    mobile_number = Column(Text, nullable=True,
                           doc="Self-reported mobile number")
    external_auth_email = Column(Text, nullable=True,
                                 doc="Email asserted by the identity provider")
    external_auth_display_name = Column(Text, nullable=True,
                                        doc="Display name asserted by the identity provider")
    is_active = Column(Boolean, nullable=False, default=True,
                       doc="Soft-delete flag")
    created_at = Column(DateTime, nullable=False, default=utc_now,
                        doc="When the account was created")
    last_login_at = Column(DateTime, nullable=True,
                           doc="Most recent sign-in")

    sessions = relationship("GameSession", back_populates="user")

    __table_args__ = (
        Index("ix_users_role_active", "role", "is_active"),
        Index("ix_users_created_at", "created_at"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "role": self.role,
            "studentName": self.student_name,
            "studentId": self.student_id,
            "mobileNumber": self.mobile_number,
            "externalAuthEmail": self.external_auth_email,
            "externalAuthDisplayName": self.external_auth_display_name,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastLoginAt": self.last_login_at.isoformat() if self.last_login_at else None,
        }

    def __repr__(self):
        return f"<User(id={self.id}, role='{self.role}', name='{self.student_name}')>"
