"""Learning resource catalog rows."""

from sqlalchemy import CheckConstraint, Column, Float, Integer, String, Text, DateTime, func
from edulearn.db.session import Base

LEVELS = ("beginner", "intermediate", "advanced")
COURSES = ("programming", "design", "business", "data-science", "marketing")
RESOURCE_TYPES = ("video", "article", "tutorial", "course", "tool")

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


def check_in(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        CheckConstraint(check_in("level", LEVELS), name="ck_resources_level"),
        CheckConstraint(check_in("course", COURSES), name="ck_resources_course"),
        CheckConstraint(check_in("type", RESOURCE_TYPES), name="ck_resources_type"),
        CheckConstraint(check_in("status", STATUSES), name="ck_resources_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    level = Column(String(50), nullable=False, index=True)
    course = Column(String(100), nullable=False, index=True)
    tags = Column(Text, nullable=False, default="[]")
    type = Column(String(50), nullable=False)
    duration = Column(String(100))
    author = Column(String(255), nullable=False)
    rating = Column(Float, default=0)
    thumbnail = Column(Text)
    link = Column(Text, nullable=False)
    submitter_email = Column(String(255), index=True)
    submitter_name = Column(String(255))
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED
