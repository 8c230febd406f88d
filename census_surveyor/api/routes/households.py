"""
Household API endpoints.

Households are created on intake with minimal details, filled in by
surveyors through updates, and completed once the survey is done. The
focal point's photo is uploaded separately and stored in S3.

Bodies are camelCase JSON. Successful responses are wrapped as
{"success": true, "data": ...}; failures are rendered by the exception
handlers in main.py.
"""

import logging
from datetime import date, datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, File, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from ...core.households.models import (
    EnvironmentalPractice,
    FamilyMember,
    FocalPoint,
    Household,
    HousingType,
    HousingTypeOption,
    SurveyStatus,
)
from ...core.photos.uploader import PhotoFile
from ..dependencies import HouseholdRepositoryDep, PhotoUploaderDep

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_EMAIL_LENGTH = 100


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------

class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_email_length(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > MAX_EMAIL_LENGTH:
        raise ValueError("Email is too long")
    return value


class FocalPointCreate(ApiModel):
    email: EmailStr
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def check_email_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_email_length(value)


class FocalPointUpdate(ApiModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def check_email_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_email_length(value)


class FamilyMemberIn(ApiModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    birth_date: date


class HousingTypeIn(ApiModel):
    value: HousingTypeOption
    custom_value: Optional[str] = Field(None, max_length=100)


class HouseholdCreate(ApiModel):
    """Intake details. Anything else in the body is ignored."""
    family_name: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1, max_length=200)
    focal_point: FocalPointCreate

    def to_domain(self) -> Household:
        return Household(
            family_name=self.family_name,
            address=self.address,
            focal_point=FocalPoint(
                email=self.focal_point.email,
                first_name=self.focal_point.first_name,
            ),
        )


class HouseholdUpdate(ApiModel):
    """
    Partial household update, also used for survey submission.

    Unknown fields (including surveyStatus, slug and dateSurveyed) are
    rejected. Null values are treated as absent.
    """
    model_config = ConfigDict(extra="forbid")

    family_name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=200)
    focal_point: Optional[FocalPointUpdate] = None
    family_members: Optional[list[FamilyMemberIn]] = None
    number_of_cars: Optional[int] = Field(None, ge=0)
    has_pets: Optional[bool] = None
    number_of_pets: Optional[int] = Field(None, ge=0)
    housing_type: Optional[HousingTypeIn] = None
    environmental_practices: Optional[list[EnvironmentalPractice]] = None

    def to_changes(self) -> dict[str, Any]:
        """Changes keyed by Household attribute name, as domain values."""
        changes = self.model_dump(exclude_none=True, exclude={
            "focal_point", "family_members", "housing_type", "environmental_practices",
        })

        if self.focal_point is not None:
            changes["focal_point"] = self.focal_point.model_dump(exclude_none=True)
        if self.family_members is not None:
            changes["family_members"] = [
                FamilyMember(
                    first_name=member.first_name,
                    last_name=member.last_name,
                    birth_date=member.birth_date,
                )
                for member in self.family_members
            ]
        if self.housing_type is not None:
            changes["housing_type"] = HousingType(
                self.housing_type.value,
                custom_value=self.housing_type.custom_value,
            )
        if self.environmental_practices is not None:
            changes["environmental_practices"] = list(self.environmental_practices)

        return changes


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class FocalPointOut(ApiModel):
    email: str
    first_name: Optional[str] = None
    picture_url: Optional[str] = None


class FamilyMemberOut(ApiModel):
    first_name: str
    last_name: str
    birth_date: date


class HousingTypeOut(ApiModel):
    value: str
    custom_value: Optional[str] = None


class HouseholdOut(ApiModel):
    id: str = Field(alias="_id")
    slug: str
    family_name: str
    address: str
    survey_status: str
    date_surveyed: Optional[datetime] = None
    focal_point: FocalPointOut
    family_members: list[FamilyMemberOut]
    number_of_cars: Optional[int] = None
    has_pets: Optional[bool] = None
    number_of_pets: Optional[int] = None
    housing_type: Optional[HousingTypeOut] = None
    environmental_practices: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, household: Household) -> "HouseholdOut":
        housing_type = None
        if household.housing_type:
            housing_type = HousingTypeOut(
                value=household.housing_type.value.value,
                custom_value=household.housing_type.custom_value,
            )

        return cls(
            id=household.id,
            slug=household.slug,
            family_name=household.family_name,
            address=household.address,
            survey_status=household.survey_status.value,
            date_surveyed=household.date_surveyed,
            focal_point=FocalPointOut(
                email=household.focal_point.email,
                first_name=household.focal_point.first_name,
                picture_url=household.focal_point.picture_url,
            ),
            family_members=[
                FamilyMemberOut(
                    first_name=member.first_name,
                    last_name=member.last_name,
                    birth_date=member.birth_date,
                )
                for member in household.family_members
            ],
            number_of_cars=household.number_of_cars,
            has_pets=household.has_pets,
            number_of_pets=household.number_of_pets,
            housing_type=housing_type,
            environmental_practices=[p.value for p in household.environmental_practices],
            created_at=household.created_at,
            updated_at=household.updated_at,
        )


class HouseholdResponse(BaseModel):
    success: bool = True
    data: HouseholdOut


class HouseholdListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[HouseholdOut]


class MessageOut(BaseModel):
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    data: MessageOut


class PhotoUploadOut(ApiModel):
    filename: str
    s3_res_data: dict[str, Any]
    s3_path: str
    household: HouseholdOut


class PhotoUploadResponse(BaseModel):
    success: bool = True
    data: PhotoUploadOut


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=HouseholdListResponse,
    summary="List households",
    description="All households, newest first. Filter with ?surveyStatus=pending|completed.",
)
async def list_households(
    repository: HouseholdRepositoryDep,
    survey_status: Annotated[Optional[SurveyStatus], Query(alias="surveyStatus")] = None,
) -> HouseholdListResponse:
    households = repository.list_all(survey_status)
    return HouseholdListResponse(
        count=len(households),
        data=[HouseholdOut.from_domain(h) for h in households],
    )


@router.post(
    "",
    response_model=HouseholdResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create household",
    description="Register a household for surveying. The survey starts out pending.",
)
async def create_household(
    request: HouseholdCreate,
    repository: HouseholdRepositoryDep,
) -> HouseholdResponse:
    household = repository.add(request.to_domain())
    return HouseholdResponse(data=HouseholdOut.from_domain(household))


@router.get(
    "/{household_id}",
    response_model=HouseholdResponse,
    summary="Get household",
)
async def get_household(
    household_id: str,
    repository: HouseholdRepositoryDep,
) -> HouseholdResponse:
    household = repository.get(household_id)
    return HouseholdResponse(data=HouseholdOut.from_domain(household))


@router.put(
    "/{household_id}",
    response_model=HouseholdResponse,
    summary="Update household",
    description="Partial update. The focal point email can only be changed through admin-update.",
)
async def update_household(
    household_id: str,
    request: HouseholdUpdate,
    repository: HouseholdRepositoryDep,
) -> HouseholdResponse:
    household = repository.get(household_id)
    household.apply_update(request.to_changes())
    repository.save(household)

    logger.info("Updated household", extra={"household_id": household_id})

    return HouseholdResponse(data=HouseholdOut.from_domain(household))


@router.put(
    "/{household_id}/admin-update",
    response_model=HouseholdResponse,
    summary="Administrative update",
    description="Like update, but may also change the focal point email. The slug is kept.",
)
async def admin_update_household(
    household_id: str,
    request: HouseholdUpdate,
    repository: HouseholdRepositoryDep,
) -> HouseholdResponse:
    household = repository.get(household_id)
    previous_email = household.focal_point.email
    household.apply_update(request.to_changes(), allow_email_change=True)
    repository.save(household)

    logger.info(
        "Admin updated household",
        extra={
            "household_id": household_id,
            "email_changed": household.focal_point.email != previous_email,
        },
    )

    return HouseholdResponse(data=HouseholdOut.from_domain(household))


@router.post(
    "/{household_id}/complete-survey",
    response_model=HouseholdResponse,
    summary="Complete survey",
    description="Submit the survey answers and mark the household's survey completed.",
)
async def complete_survey(
    household_id: str,
    request: HouseholdUpdate,
    repository: HouseholdRepositoryDep,
) -> HouseholdResponse:
    household = repository.get(household_id)
    household.complete(request.to_changes())
    repository.save(household)

    logger.info("Completed survey", extra={"household_id": household_id})

    return HouseholdResponse(data=HouseholdOut.from_domain(household))


@router.delete(
    "/{household_id}",
    response_model=MessageResponse,
    summary="Delete household",
    description="Remove the household record. Its stored photo is left in place.",
)
async def delete_household(
    household_id: str,
    repository: HouseholdRepositoryDep,
) -> MessageResponse:
    repository.delete(household_id)
    return MessageResponse(data=MessageOut(message="Household deleted successfully"))


@router.put(
    "/{household_id}/focal-point-photo",
    response_model=PhotoUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload focal point photo",
    description="Multipart upload with a single `file` field. Replaces any earlier photo.",
)
async def upload_focal_point_photo(
    household_id: str,
    repository: HouseholdRepositoryDep,
    uploader: PhotoUploaderDep,
    file: Annotated[Optional[UploadFile], File()] = None,
) -> PhotoUploadResponse:
    household = repository.get(household_id)

    photo = None
    if file is not None:
        photo = PhotoFile(
            data=await file.read(),
            content_type=file.content_type or "",
            filename=file.filename or "",
            size_bytes=file.size,
        )

    result = await uploader.upload_focal_point_photo(household, photo)

    household.set_picture(result.reference)
    repository.save(household)

    return PhotoUploadResponse(
        data=PhotoUploadOut(
            filename=result.filename,
            s3_res_data=result.provider_response,
            s3_path=result.url,
            household=HouseholdOut.from_domain(household),
        )
    )
