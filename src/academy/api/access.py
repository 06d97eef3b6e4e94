"""Course access and progress endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from academy.api.deps import CurrentEmail, ProgressServiceDep, SettingsDep

router = APIRouter()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccessResponse(CamelModel):
    has_access: bool
    email: str
    course: str


class ProgressResponse(CamelModel):
    completed_lessons: list[str]
    completed_modules: list[str]
    updated_at: datetime | None


class ProgressUpdate(CamelModel):
    completed_lessons: list[str] = Field(default_factory=list)
    completed_modules: list[str] = Field(default_factory=list)
    course_slug: str | None = None


class ProgressSaved(CamelModel):
    ok: bool = True
    updated_at: datetime


@router.get("/access", response_model=AccessResponse)
async def check_access(
    email: CurrentEmail,
    progress: ProgressServiceDep,
    config: SettingsDep,
    course: str | None = Query(default=None, description="Course slug"),
):
    """Check whether the signed-in user has purchased a course."""
    course_slug = course or config.default_course_slug
    has_access = await progress.has_access(email, course_slug)
    return AccessResponse(has_access=has_access, email=email, course=course_slug)


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    email: CurrentEmail,
    progress: ProgressServiceDep,
    config: SettingsDep,
    course: str | None = Query(default=None, description="Course slug"),
):
    """Get lesson and module progress for a course."""
    snapshot = await progress.get_progress(email, course or config.default_course_slug)
    return ProgressResponse(
        completed_lessons=snapshot.completed_lessons,
        completed_modules=snapshot.completed_modules,
        updated_at=snapshot.updated_at,
    )


@router.put("/progress", response_model=ProgressSaved)
async def save_progress(
    update: ProgressUpdate,
    email: CurrentEmail,
    progress: ProgressServiceDep,
    config: SettingsDep,
):
    """Replace lesson and module progress for a course."""
    updated_at = await progress.save_progress(
        email,
        update.course_slug or config.default_course_slug,
        update.completed_lessons,
        update.completed_modules,
    )
    return ProgressSaved(updated_at=updated_at)
