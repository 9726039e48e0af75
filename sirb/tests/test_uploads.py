"""
Upload slot tests.
"""
import re

import pytest

from sirb.config import settings
from sirb.errors import BadRequestError, ForbiddenError, NotFoundError, RateLimitError
from sirb.services.rate_limiter import InMemoryRateLimiter
from sirb.services.upload_service import build_object_key, issue_upload_slot, sanitize_filename

PDF = "application/pdf"


@pytest.mark.parametrize("filename,expected", [
    ("notes.pdf", "notes.pdf"),
    ("my notes (final).pdf", "my_notes__final_.pdf"),
    ("ملخص الفصل.docx", "ملخص_الفصل.docx"),
    ("../../etc/passwd", "______etc_passwd"),
    ("archive.tar.gz", "archive_tar.gz"),
    ("README", "README"),
])
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_object_key_layout():
    key = build_object_key(42, "week 1.pdf")
    assert re.fullmatch(r"canvas-files/42/[0-9a-f-]{36}-week_1\.pdf", key)
    assert build_object_key(42, "week 1.pdf") != key


@pytest.mark.asyncio
async def test_owner_gets_slot(db, contributor, make_canvas):
    canvas = await make_canvas()

    result = await issue_upload_slot(db, InMemoryRateLimiter(), contributor.id, canvas.id, "slides.pdf", PDF, 2048)

    assert result["key"].startswith(f"canvas-files/{canvas.id}/")
    assert result["content_type"] == PDF
    assert result["size"] == 2048


@pytest.mark.asyncio
async def test_admin_gets_slot(db, admin, make_canvas):
    canvas = await make_canvas()
    result = await issue_upload_slot(db, InMemoryRateLimiter(), admin.id, canvas.id, "a.png", "image/png", 10)
    assert result["success"] is True


@pytest.mark.asyncio
async def test_type_and_size_checked(db, contributor, make_canvas):
    canvas = await make_canvas()
    limiter = InMemoryRateLimiter()

    with pytest.raises(BadRequestError):
        await issue_upload_slot(db, limiter, contributor.id, canvas.id, "run.exe", "application/x-msdownload", 10)
    with pytest.raises(BadRequestError):
        await issue_upload_slot(db, limiter, contributor.id, canvas.id, "big.pdf", PDF, settings.MAX_UPLOAD_BYTES + 1)


@pytest.mark.asyncio
async def test_non_owner_refused(db, learner, make_canvas):
    canvas = await make_canvas()
    with pytest.raises(ForbiddenError):
        await issue_upload_slot(db, InMemoryRateLimiter(), learner.id, canvas.id, "a.pdf", PDF, 10)


@pytest.mark.asyncio
async def test_missing_canvas(db, contributor):
    with pytest.raises(NotFoundError):
        await issue_upload_slot(db, InMemoryRateLimiter(), contributor.id, 9999, "a.pdf", PDF, 10)


@pytest.mark.asyncio
async def test_per_user_rate_limit(db, contributor, learner, make_canvas, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_RATE_LIMIT", 2)
    canvas = await make_canvas()
    limiter = InMemoryRateLimiter()

    for _ in range(2):
        await issue_upload_slot(db, limiter, contributor.id, canvas.id, "a.pdf", PDF, 10)

    with pytest.raises(RateLimitError) as exc:
        await issue_upload_slot(db, limiter, contributor.id, canvas.id, "a.pdf", PDF, 10)
    assert exc.value.details["retry_after_seconds"] > 0

    with pytest.raises(ForbiddenError):
        await issue_upload_slot(db, limiter, learner.id, canvas.id, "a.pdf", PDF, 10)
