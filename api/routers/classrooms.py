"""Classrooms Router - Classrooms, enrollments and statistics."""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_lifecycle, pagination_params
from api.models import (
    ClassroomCreateRequest,
    ClassroomDetailResponse,
    ClassroomResponse,
    ClassroomStatisticsResponse,
    EnrollmentRequest,
    EnrollmentResponse,
    EssayListResponse,
    EssayResponse,
    StudentResponse,
)
from grading import EssayLifecycle
from utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/classrooms", tags=["Classrooms"])


@router.post("", response_model=ClassroomResponse, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    request: ClassroomCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """
    Create a classroom owned by the caller.

    **Requires:** Teacher or Admin role
    """
    classroom = await lifecycle.create_classroom(user, request.name)
    return ClassroomResponse.model_validate(classroom)


@router.get("", response_model=List[ClassroomResponse])
async def list_classrooms(
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """
    List the caller's classrooms.

    Teachers get the classrooms they own, students the ones they are
    enrolled in, admins every classroom.
    """
    classrooms = await lifecycle.list_classrooms(user)
    return [ClassroomResponse.model_validate(c) for c in classrooms]


@router.get("/{classroom_id}", response_model=ClassroomDetailResponse)
async def get_classroom(
    classroom_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    classroom, students = await lifecycle.get_classroom(user, classroom_id)
    return ClassroomDetailResponse(
        **ClassroomResponse.model_validate(classroom).model_dump(),
        students=[StudentResponse.model_validate(s) for s in students],
    )


@router.delete("/{classroom_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_classroom(
    classroom_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """Delete a classroom. Its essays stay with their students."""
    await lifecycle.delete_classroom(user, classroom_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{classroom_id}/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    classroom_id: str,
    request: EnrollmentRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    enrollment = await lifecycle.enroll_student(user, classroom_id, request.student_email)
    return EnrollmentResponse.model_validate(enrollment)


@router.delete("/{classroom_id}/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(
    classroom_id: str,
    student_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    await lifecycle.remove_student(user, classroom_id, student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{classroom_id}/essays", response_model=EssayListResponse)
async def list_classroom_essays(
    classroom_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
    pagination: dict = Depends(pagination_params),
):
    essays = await lifecycle.list_classroom_essays(
        user,
        classroom_id,
        limit=pagination["page_size"],
        offset=pagination["offset"],
    )
    return EssayListResponse(
        essays=[EssayResponse.model_validate(e) for e in essays],
        page=pagination["page"],
        page_size=pagination["page_size"],
    )


@router.get("/{classroom_id}/statistics", response_model=ClassroomStatisticsResponse)
async def classroom_statistics(
    classroom_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """Essay counts, mean final score and per-competency means."""
    stats = await lifecycle.classroom_statistics(user, classroom_id)
    return ClassroomStatisticsResponse(**stats)
