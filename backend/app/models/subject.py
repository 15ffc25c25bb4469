from sqlalchemy import Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from ..database import Base


# Join rows are written once alongside their application and never updated.
application_subjects = Table(
    "application_subjects",
    Base.metadata,
    Column(
        "application_id",
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "subject_id",
        Integer,
        ForeignKey("subjects.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    ),
)


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False)

    applications = relationship(
        "Application",
        secondary=application_subjects,
        back_populates="subjects",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, name={self.name!r})>"
