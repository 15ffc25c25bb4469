import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.subject import Subject, application_subjects
from ..utils.error_handlers import get_error_message, handle_database_error
from ..utils.roles import admin_only
from ..utils.validation import validate_string_field

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subjects", tags=["Subjects"])


class SubjectCreate(BaseModel):
    name: str | None = None


class SubjectUpdate(BaseModel):
    id: int | None = None
    name: str | None = None


class SubjectDelete(BaseModel):
    ids: list[int] = []


def _subject_to_public(s: Subject) -> dict:
    return {"id": s.id, "name": s.name}


def _name_taken(db: Session, name: str, *, exclude_id: int | None = None) -> bool:
    q = db.query(Subject.id).filter(Subject.name == name)
    if exclude_id is not None:
        q = q.filter(Subject.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_subjects(db: Session = Depends(get_db)):
    rows = db.query(Subject).order_by(Subject.name).all()
    return [_subject_to_public(s) for s in rows]


@router.post("", status_code=201)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db), user=Depends(admin_only)):
    if not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Subject name required")
    name = validate_string_field(payload.name, "Subject name", max_length=150)

    if _name_taken(db, name):
        raise HTTPException(status_code=409, detail=get_error_message("subject_exists"))

    subject = Subject(name=name)
    try:
        db.add(subject)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_database_error(e, "creating subject", conflict_key="subject_exists")

    return {"success": True, "subject": _subject_to_public(subject)}


@router.put("")
def update_subject(payload: SubjectUpdate, db: Session = Depends(get_db), user=Depends(admin_only)):
    if not payload.id or not payload.name or not payload.name.strip():
        raise HTTPException(status_code=400, detail="Invalid payload")
    name = validate_string_field(payload.name, "Subject name", max_length=150)

    subject = db.query(Subject).filter(Subject.id == payload.id).first()
    if not subject:
        raise HTTPException(status_code=404, detail=get_error_message("subject_not_found"))

    if _name_taken(db, name, exclude_id=subject.id):
        raise HTTPException(status_code=409, detail=get_error_message("subject_exists"))

    subject.name = name
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_database_error(e, "updating subject", conflict_key="subject_exists")

    return {"success": True, "subject": _subject_to_public(subject)}


@router.delete("/delete")
def delete_subjects(payload: SubjectDelete, db: Session = Depends(get_db), user=Depends(admin_only)):
    requested = sorted(set(payload.ids))
    if not requested:
        raise HTTPException(status_code=400, detail=get_error_message("no_subjects_selected"))

    try:
        # Lock the candidate rows so an application can't start referencing one
        # between the usage check and the delete (no-op on SQLite).
        existing = set(
            db.execute(
                select(Subject.id).where(Subject.id.in_(requested)).with_for_update()
            ).scalars()
        )
        in_use = set(
            db.execute(
                select(application_subjects.c.subject_id)
                .where(application_subjects.c.subject_id.in_(sorted(existing)))
                .distinct()
            ).scalars()
        ) if existing else set()

        deletable = sorted(existing - in_use)
        if deletable:
            db.query(Subject).filter(Subject.id.in_(deletable)).delete(synchronize_session=False)
        db.commit()
    except IntegrityError as e:
        # FK RESTRICT fired: a subject became referenced after all.
        db.rollback()
        logger.warning("Subject delete hit a new reference: %s", e)
        raise HTTPException(status_code=409, detail=get_error_message("subject_in_use"))
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_database_error(e, "deleting subjects")

    if deletable:
        logger.info("Deleted subjects %s (in use: %s)", deletable, sorted(in_use))

    return {
        "deleted": deletable,
        "in_use": sorted(in_use),
        "not_found": [i for i in requested if i not in existing],
    }
