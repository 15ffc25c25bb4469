from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from .subject import application_subjects


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    # UNIQUE is the authoritative duplicate check; the API pre-check only gives a nicer error.
    email = Column(String(255), unique=True, index=True, nullable=False)
    gender = Column(String(30), nullable=False)
    phone = Column(String(8), nullable=False)  # normalized: digits only
    university = Column(String(255), nullable=False)
    field_of_study = Column(String(255), nullable=False)
    degree_level = Column(String(20), nullable=False)  # Bachelor | Master | Engineering
    application_type = Column(String(10), nullable=False)  # Solo | Pair
    internship_duration = Column(String(50), nullable=False)
    preferred_working_method = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=True)
    # Assigned in Python (UTC) so ordering and week boundaries behave the same on SQLite and Postgres.
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    # Relative to the upload root's parent, e.g. "uploads/1712345678901234567_cv.pdf"
    cv_file_path = Column(String(500), nullable=False)
    motivation_file_path = Column(String(500), nullable=True)

    subjects = relationship(
        "Subject",
        secondary=application_subjects,
        back_populates="applications",
        order_by="Subject.name",
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, email={self.email!r})>"
