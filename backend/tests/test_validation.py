"""
Validation and error-handling helpers
"""
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, OperationalError

from backend.app.services.application_query import start_of_week
from backend.app.utils.error_handlers import get_error_message, handle_database_error
from backend.app.utils.validation import (
    normalize_phone,
    parse_start_date,
    sanitize_filename,
    validate_account_email,
    validate_application_email,
    validate_choice,
    validate_role,
    validate_string_field,
    DEGREE_LEVELS,
)


class TestApplicationEmail:
    def test_valid_email(self):
        assert validate_application_email("a@b.com") == "a@b.com"
        assert validate_application_email("  USER@Example.ORG ") == "user@example.org"

    @pytest.mark.parametrize("email", ["", None, "plainaddress", "user@localhost", "first.last@host"])
    def test_invalid_email(self, email):
        with pytest.raises(HTTPException) as exc:
            validate_application_email(email)
        assert exc.value.status_code == 400


class TestAccountEmail:
    def test_account_email_is_stricter(self):
        assert validate_account_email("hr@example.com") == "hr@example.com"
        with pytest.raises(HTTPException):
            validate_account_email("hr@example.c")


class TestPhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [("12345678", "12345678"), ("12-34-56-78", "12345678"), (" 98 765 432 ", "98765432")],
    )
    def test_normalizes_to_eight_digits(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "1234567", "123456789", "phone"])
    def test_rejects_other_lengths(self, raw):
        with pytest.raises(HTTPException) as exc:
            normalize_phone(raw)
        assert exc.value.status_code == 400
        assert "8 digits" in exc.value.detail


class TestStartDate:
    def test_parses_iso_date(self):
        assert parse_start_date("2026-07-01") == date(2026, 7, 1)

    @pytest.mark.parametrize("raw", [None, "", "   ", "2026-13-01", "01/07/2026", "tomorrow"])
    def test_malformed_dates_are_dropped(self, raw):
        assert parse_start_date(raw) is None


class TestChoicesAndRoles:
    def test_degree_level(self):
        assert validate_choice("Master", "degree_level", DEGREE_LEVELS) == "Master"
        with pytest.raises(HTTPException):
            validate_choice("master", "degree_level", DEGREE_LEVELS)

    def test_role_defaults_to_user(self):
        assert validate_role(None) == "user"
        assert validate_role("") == "user"
        assert validate_role(" Admin ") == "admin"
        with pytest.raises(HTTPException) as exc:
            validate_role("root")
        assert "role" in exc.value.detail.lower()


class TestStringField:
    def test_trims_and_bounds(self):
        assert validate_string_field("  INSAT ", "university", max_length=10) == "INSAT"
        with pytest.raises(HTTPException) as exc:
            validate_string_field("x" * 11, "university", max_length=10)
        assert "10" in exc.value.detail

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_value_is_required(self, value):
        with pytest.raises(HTTPException) as exc:
            validate_string_field(value, "university")
        assert exc.value.status_code == 400


class TestSanitizeFilename:
    def test_strips_traversal(self):
        assert sanitize_filename("../../etc/passwd") == "____etc_passwd"
        assert sanitize_filename(".hidden.pdf") == "hidden.pdf"

    def test_rejects_empty(self):
        with pytest.raises(HTTPException):
            sanitize_filename("")
        with pytest.raises(HTTPException):
            sanitize_filename("..")


class TestStartOfWeek:
    def test_is_monday_midnight_local(self):
        now = datetime(2026, 10, 22, 15, 30, tzinfo=timezone.utc)  # a Thursday
        boundary = start_of_week(now).astimezone()
        assert boundary.weekday() == 0
        assert (boundary.hour, boundary.minute, boundary.second) == (0, 0, 0)
        assert boundary <= now
        assert (now - boundary).days < 7

    def test_monday_keeps_its_own_offset_across_dst_change(self):
        paris = ZoneInfo("Europe/Paris")
        # Sunday after the October switch back to CET; Monday of that week was still CEST.
        now = datetime(2026, 10, 25, 12, 0, tzinfo=timezone.utc)
        boundary = start_of_week(now, tz=paris)
        assert boundary == datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)
        assert boundary.astimezone(paris).replace(tzinfo=None) == datetime(2026, 10, 19)

    def test_boundary_in_winter_time(self):
        paris = ZoneInfo("Europe/Paris")
        now = datetime(2026, 11, 4, 9, 0, tzinfo=timezone.utc)  # a Wednesday
        assert start_of_week(now, tz=paris) == datetime(2026, 11, 1, 23, 0, tzinfo=timezone.utc)


class TestDatabaseErrors:
    def test_unique_violation_is_conflict(self):
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: applications.email"))
        exc = handle_database_error(err, "test", conflict_key="email_used")
        assert exc.status_code == 409
        assert exc.detail == get_error_message("email_used")

    def test_operational_error_is_unavailable(self):
        err = OperationalError("SELECT 1", {}, Exception("connection refused"))
        assert handle_database_error(err, "test").status_code == 503

    def test_other_errors_are_opaque(self):
        exc = handle_database_error(RuntimeError("secret internals"), "test")
        assert exc.status_code == 500
        assert "secret" not in exc.detail
