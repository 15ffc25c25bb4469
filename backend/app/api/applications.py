import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.application import Application
from ..models.subject import Subject
from ..services.application_query import (
    SORTABLE_FIELDS,
    application_to_public,
    count_since,
    list_applications,
    search_applications,
    start_of_week,
)
from ..services.file_storage import UploadStore
from ..utils.error_handlers import get_error_message, handle_database_error
from ..utils.roles import admin_only
from ..utils.validation import (
    APPLICATION_TYPES,
    DEGREE_LEVELS,
    normalize_email,
    normalize_phone,
    parse_start_date,
    validate_application_email,
    validate_choice,
    validate_string_field,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Applications"])

PDF_CONTENT_TYPE = "application/pdf"


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store


def _email_taken(db: Session, email: str) -> bool:
    return db.query(Application.id).filter(Application.email == email).first() is not None


def _has_file(upload: UploadFile | None) -> bool:
    # Browsers send an empty part (filename="") for untouched file inputs.
    return upload is not None and bool(upload.filename)


def _is_pdf(upload: UploadFile) -> bool:
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    return content_type == PDF_CONTENT_TYPE


def _resolve_subjects(db: Session, names: list[str]) -> list[Subject]:
    # Unknown names are skipped; the form only offers existing subjects.
    if not names:
        return []
    return db.query(Subject).filter(Subject.name.in_(names)).order_by(Subject.name).all()


@router.post("/apply", status_code=201)
def apply(
    full_name: str = Form(...),
    email: str = Form(...),
    gender: str = Form(...),
    phone: str = Form(...),
    university: str = Form(...),
    field_of_study: str = Form(...),
    degree_level: str = Form(...),
    internship_duration: str = Form(...),
    preferred_working_method: str = Form(...),
    application_type: str = Form(...),
    early_start_date: str | None = Form(None),
    subjects: list[str] = Form(default=[]),
    cv: UploadFile | None = File(None),
    motivation: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    uploads: UploadStore = Depends(get_upload_store),
):
    fields = {
        "full_name": validate_string_field(full_name, "full_name", max_length=255),
        "gender": validate_string_field(gender, "gender", max_length=30),
        "university": validate_string_field(university, "university", max_length=255),
        "field_of_study": validate_string_field(field_of_study, "field_of_study", max_length=255),
        "internship_duration": validate_string_field(internship_duration, "internship_duration", max_length=50),
        "preferred_working_method": validate_string_field(
            preferred_working_method, "preferred_working_method", max_length=50
        ),
        "degree_level": validate_choice(degree_level.strip(), "degree_level", DEGREE_LEVELS),
        "application_type": validate_choice(application_type.strip(), "application_type", APPLICATION_TYPES),
    }

    email = validate_application_email(email)
    fields["phone"] = normalize_phone(phone)

    try:
        if _email_taken(db, email):
            raise HTTPException(status_code=409, detail=get_error_message("email_used"))
    except SQLAlchemyError as e:
        raise handle_database_error(e, "checking application email")

    subject_names = sorted({s.strip() for s in subjects if s and s.strip()})
    if not subject_names:
        raise HTTPException(status_code=400, detail=get_error_message("no_subjects"))

    if not _has_file(cv):
        raise HTTPException(status_code=400, detail=get_error_message("cv_required"))
    if not _is_pdf(cv):
        raise HTTPException(status_code=400, detail=get_error_message("cv_not_pdf"))
    has_motivation = _has_file(motivation)
    if has_motivation and not _is_pdf(motivation):
        raise HTTPException(status_code=400, detail=get_error_message("motivation_not_pdf"))

    start_date = parse_start_date(early_start_date)

    with uploads.tracked() as batch:
        cv_path = batch.save(cv)
        motivation_path = batch.save(motivation) if has_motivation else None

        application = Application(
            email=email,
            start_date=start_date,
            cv_file_path=cv_path,
            motivation_file_path=motivation_path,
            **fields,
        )
        try:
            application.subjects = _resolve_subjects(db, subject_names)
            db.add(application)
            db.commit()
        except IntegrityError as e:
            # A concurrent submission with the same email won the race.
            db.rollback()
            raise handle_database_error(e, "creating application", conflict_key="email_used")
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Database error creating application: %s", e)
            raise HTTPException(status_code=500, detail=get_error_message("application_failed"))

    logger.info(
        "Application %s created (%d subject(s), motivation=%s)",
        application.id,
        len(application.subjects),
        bool(motivation_path),
    )
    return {"success": True, "id": application.id}


@router.get("/email-exists")
def email_exists(email: str | None = Query(default=None), db: Session = Depends(get_db)):
    email = normalize_email(email)
    if not email:
        raise HTTPException(status_code=400, detail="Email parameter required")
    try:
        return {"exists": _email_taken(db, email)}
    except SQLAlchemyError as e:
        raise handle_database_error(e, "checking application email")


@router.get("/applications")
def get_applications(db: Session = Depends(get_db), user=Depends(admin_only)):
    try:
        rows = list_applications(db)
    except SQLAlchemyError as e:
        raise handle_database_error(e, "listing applications")
    return [application_to_public(a) for a in rows]


@router.get("/applications/search")
def find_applications(
    q: str | None = Query(default=None, description="Matches full name or email (case-insensitive)"),
    degree_level: str | None = Query(default=None),
    application_type: str | None = Query(default=None),
    this_week: bool = Query(default=False),
    sort: str = Query(default="created_at"),
    order: str = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=5, ge=1, le=100),
    db: Session = Depends(get_db),
    user=Depends(admin_only),
):
    if sort not in SORTABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Invalid sort. Must be one of: {', '.join(SORTABLE_FIELDS)}")
    order = order.strip().lower()
    if order not in ("asc", "desc"):
        raise HTTPException(status_code=400, detail="Invalid order. Must be asc or desc")
    if degree_level:
        validate_choice(degree_level, "degree_level", DEGREE_LEVELS)
    if application_type:
        validate_choice(application_type, "application_type", APPLICATION_TYPES)

    try:
        return search_applications(
            db,
            q=q,
            degree_level=degree_level,
            application_type=application_type,
            this_week=this_week,
            sort=sort,
            order=order,
            page=page,
            page_size=page_size,
        )
    except SQLAlchemyError as e:
        raise handle_database_error(e, "searching applications")


@router.get("/weekly-applications")
def weekly_applications(db: Session = Depends(get_db), user=Depends(admin_only)):
    try:
        return {"count": count_since(db, start_of_week())}
    except SQLAlchemyError as e:
        raise handle_database_error(e, "counting weekly applications")
