import pytest
from sqlalchemy.exc import IntegrityError

from backend.app.database import build_engine, build_session_factory, init_db
from backend.app.models.application import Application
from backend.app.models.subject import Subject
from backend.app.models.user import User


@pytest.fixture()
def db_session(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'crud.sqlite3').as_posix()}")
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def _application(email: str, **overrides) -> Application:
    fields = dict(
        full_name="Crud Applicant",
        email=email,
        gender="Male",
        phone="12345678",
        university="ENSI",
        field_of_study="Software Engineering",
        degree_level="Engineering",
        application_type="Pair",
        internship_duration="4 months",
        preferred_working_method="Remote",
        cv_file_path="uploads/1_cv.pdf",
    )
    fields.update(overrides)
    return Application(**fields)


def test_db_crud_operations_and_relationships(db_session):
    admin = User(username="crud_admin", email="crud_admin@example.com", password_hash="hashed", role="admin")
    db_session.add(admin)
    db_session.commit()
    assert admin.id is not None
    assert admin.created_at is not None

    ai = Subject(name="Artificial Intelligence")
    iot = Subject(name="IoT")
    db_session.add_all([ai, iot])
    db_session.commit()

    application = _application("crud@example.com")
    application.subjects = [iot, ai]
    db_session.add(application)
    db_session.commit()
    db_session.refresh(application)

    assert application.created_at is not None
    assert [s.name for s in application.subjects] == ["Artificial Intelligence", "IoT"]
    assert [a.id for a in ai.applications] == [application.id]


def test_application_email_is_unique(db_session):
    db_session.add(_application("same@example.com"))
    db_session.commit()

    db_session.add(_application("same@example.com", full_name="Copycat"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_subject_name_is_unique(db_session):
    db_session.add(Subject(name="Networks"))
    db_session.commit()
    db_session.add(Subject(name="Networks"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_referenced_subject_cannot_be_deleted(db_session):
    subject = Subject(name="Embedded Systems")
    application = _application("fk@example.com")
    application.subjects = [subject]
    db_session.add(application)
    db_session.commit()

    with pytest.raises(IntegrityError):
        db_session.query(Subject).filter(Subject.id == subject.id).delete(synchronize_session=False)
        db_session.commit()
    db_session.rollback()
