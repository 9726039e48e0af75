"""
sirb/schemas/community.py
Comments, reports and moderator management.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from sirb.orm.report import ReportReason, ReportStatus


class CommentCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: Optional[int] = Field(None, gt=0)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text cannot be empty")
        return v.strip()


class CommentUpdateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text cannot be empty")
        return v.strip()


class ReportRequest(BaseModel):
    """
    Used by: POST /api/reports
    """
    kind: Literal["canvas", "comment", "quiz", "quiz_comment"]
    target_id: int = Field(..., gt=0)
    reason: ReportReason
    description: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "quiz",
                "target_id": 17,
                "reason": "WRONG_INFO",
                "description": "الإجابة الصحيحة للسؤال الثالث خاطئة"
            }
        }


class ResolveReportRequest(BaseModel):
    resolution: ReportStatus
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('resolution')
    @classmethod
    def validate_resolution(cls, v: ReportStatus) -> ReportStatus:
        if v not in (ReportStatus.RESOLVED, ReportStatus.DISMISSED):
            raise ValueError("resolution must be RESOLVED or DISMISSED")
        return v


class AssignModeratorRequest(BaseModel):
    user_id: int = Field(..., gt=0)
