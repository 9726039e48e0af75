"""
sirb/schemas/content.py
Request schemas for canvas and quiz lifecycle, voting, reordering and uploads.
"""
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from sirb.orm.vote import VoteType


# ================= LIFECYCLE =================

class ContentCreateRequest(BaseModel):
    """
    Used by: POST /api/canvases, POST /api/quizzes
    """
    chapter_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    image_url: Optional[str] = Field(None, max_length=500, description="Canvases only")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        if len(v.strip()) < 3:
            raise ValueError("title must be at least 3 characters")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "chapter_id": 4,
                "title": "مراجعة الفصل الأول",
                "description": "أسئلة على المفاهيم الأساسية"
            }
        }


class ContentUpdateRequest(BaseModel):
    """Used by: PATCH /api/canvases/{id}, PATCH /api/quizzes/{id}"""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    image_url: Optional[str] = Field(None, max_length=500)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v.strip()) < 3:
            raise ValueError("title must be at least 3 characters")
        return v.strip()


class RejectRequest(BaseModel):
    reason: str = Field(..., max_length=1000)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """5-1000 characters after trimming"""
        trimmed = v.strip()
        if len(trimmed) < 5:
            raise ValueError("reason must be at least 5 characters")
        return trimmed


# ================= VOTES =================

class VoteRequest(BaseModel):
    vote_type: VoteType


# ================= REORDER =================

class SequenceUpdateItem(BaseModel):
    id: int = Field(..., gt=0)
    sequence: int = Field(..., ge=0)


class ReorderRequest(BaseModel):
    """
    Used by: PUT /api/moderation/chapters/{chapter_id}/{kind}/order,
             PUT /api/quizzes/{id}/questions/order
    """
    updates: List[SequenceUpdateItem] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_unique(self):
        ids = [u.id for u in self.updates]
        sequences = [u.sequence for u in self.updates]
        if len(set(ids)) != len(ids) or len(set(sequences)) != len(sequences):
            raise ValueError("ids and sequences must be unique")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "updates": [{"id": 12, "sequence": 1}, {"id": 9, "sequence": 2}]
            }
        }


# ================= UPLOADS =================

class UploadSlotRequest(BaseModel):
    """Used by: POST /api/uploads/canvas-file"""
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)
    canvas_id: int = Field(..., gt=0)
