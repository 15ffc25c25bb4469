import math
from datetime import datetime, timedelta, timezone, tzinfo

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from ..models.application import Application

SORTABLE_FIELDS = (
    "id",
    "full_name",
    "email",
    "gender",
    "phone",
    "university",
    "field_of_study",
    "degree_level",
    "application_type",
    "internship_duration",
    "preferred_working_method",
    "start_date",
    "created_at",
)


def start_of_week(now: datetime | None = None, tz: tzinfo | None = None) -> datetime:
    """
    Monday 00:00 of the ISO week containing `now`, returned as an aware UTC datetime.

    The week is reckoned in `tz` (a zoneinfo zone), or the server's local zone when
    omitted. Monday midnight gets its own UTC offset, which differs from `now`'s
    when a DST change falls inside the week.
    """
    now = now or datetime.now(timezone.utc)
    local_now = now.astimezone(tz) if tz is not None else now.astimezone()
    monday = datetime.combine(local_now.date() - timedelta(days=local_now.weekday()), datetime.min.time())
    if tz is not None:
        boundary = monday.replace(tzinfo=tz)
    else:
        # Naive local wall time; astimezone() resolves it with the offset in force on Monday.
        boundary = monday.astimezone()
    return boundary.astimezone(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are always UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def application_to_public(a: Application) -> dict:
    return {
        "id": a.id,
        "full_name": a.full_name,
        "email": a.email,
        "gender": a.gender,
        "phone": a.phone,
        "university": a.university,
        "field_of_study": a.field_of_study,
        "degree_level": a.degree_level,
        "application_type": a.application_type,
        "internship_duration": a.internship_duration,
        "preferred_working_method": a.preferred_working_method,
        "start_date": a.start_date.isoformat() if a.start_date else None,
        "created_at": _as_utc(a.created_at).isoformat() if a.created_at else None,
        "cv_file_path": a.cv_file_path,
        "motivation_file_path": a.motivation_file_path,
        "subjects": [s.name for s in a.subjects],
    }


def _base_query(db: Session) -> Query:
    # One batched IN query for all subjects instead of one per application.
    return db.query(Application).options(selectinload(Application.subjects))


def list_applications(db: Session) -> list[Application]:
    return (
        _base_query(db)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .all()
    )


def count_since(db: Session, boundary: datetime) -> int:
    return (
        db.query(func.count(Application.id))
        .filter(Application.created_at >= boundary)
        .scalar()
        or 0
    )


def search_applications(
    db: Session,
    *,
    q: str | None = None,
    degree_level: str | None = None,
    application_type: str | None = None,
    this_week: bool = False,
    sort: str = "created_at",
    order: str = "desc",
    page: int = 1,
    page_size: int = 5,
) -> dict:
    """Filter, sort and paginate applications the way the HR backoffice table does."""
    query = _base_query(db)

    term = (q or "").strip().lower()
    if term:
        query = query.filter(
            or_(
                func.lower(Application.full_name).contains(term, autoescape=True),
                func.lower(Application.email).contains(term, autoescape=True),
            )
        )
    if degree_level:
        query = query.filter(Application.degree_level == degree_level)
    if application_type:
        query = query.filter(Application.application_type == application_type)
    if this_week:
        query = query.filter(Application.created_at >= start_of_week())

    total = query.order_by(None).count()

    column = getattr(Application, sort)
    tie_break = Application.id
    if order == "asc":
        query = query.order_by(column.asc(), tie_break.asc())
    else:
        query = query.order_by(column.desc(), tie_break.desc())

    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return {
        "items": [application_to_public(a) for a in rows],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size) if total else 0,
    }
