"""
Domain models for household surveys.

A Household is the aggregate root: it owns its focal point, family members,
housing type and the reference to the focal point's stored photo. None of
these are addressable on their own.

These models know nothing about MongoDB or HTTP. The repository translates
them to documents and the API layer translates them to JSON.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from ..errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurveyStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class HousingTypeOption(Enum):
    """Housing types offered by the survey form."""
    APARTMENT = "Apartment"
    HOUSE = "House"
    CONDOMINIUM = "Condominium"
    DUPLEX = "Duplex"
    MOBILE_HOME = "Mobile home"
    OTHER = "Other"


class EnvironmentalPractice(Enum):
    RECYCLING = "Recycling"
    COMPOSTING = "Composting food scraps"
    WATER_CONSERVATION = "Conserving water"
    PLASTIC_REDUCTION = "Reducing plastic use"
    REUSABLE_BAGS = "Using reusable shopping bags"
    LOCAL_INITIATIVES = "Participating in local environmental initiatives"


@dataclass(frozen=True)
class StoredPhotoReference:
    """
    Where a photo lives in object storage.

    Frozen because a reference is a value: two references to the same
    bucket, region and key are the same slot.
    """
    bucket: str
    region: str
    key: str

    @property
    def url(self) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{self.key}"


@dataclass
class FamilyMember:
    first_name: str
    last_name: str
    birth_date: date


@dataclass
class FocalPoint:
    """The household's primary contact."""
    email: str
    first_name: Optional[str] = None
    picture: Optional[StoredPhotoReference] = None

    @property
    def picture_url(self) -> Optional[str]:
        return self.picture.url if self.picture else None


@dataclass
class HousingType:
    """
    Housing type with a free-text value that only "Other" may carry.
    """
    value: HousingTypeOption
    custom_value: Optional[str] = None

    def __post_init__(self) -> None:
        if self.custom_value is not None:
            self.custom_value = self.custom_value.strip() or None
        if self.value != HousingTypeOption.OTHER and self.custom_value is not None:
            raise ValidationError.for_field(
                "housingType.customValue",
                "Custom housing type value is only allowed when type is 'Other'",
            )

    @property
    def is_complete(self) -> bool:
        return self.value != HousingTypeOption.OTHER or self.custom_value is not None


def _slug_part(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def build_slug(family_name: str, email: str) -> str:
    """
    Derive the URL-safe household slug.

    "Van Der Berg" + "jan.vdb@example.com" -> "van-der-berg-jan-vdb"
    """
    local_part = email.split("@", 1)[0]
    return f"{_slug_part(family_name)}-{_slug_part(local_part)}"


# Fields a general or admin update may set directly. Status and completion
# date only move through complete(); the slug never moves.
UPDATABLE_FIELDS = frozenset({
    "family_name",
    "address",
    "family_members",
    "number_of_cars",
    "has_pets",
    "number_of_pets",
    "housing_type",
    "environmental_practices",
})

PET_COUNT_MESSAGE = "Number of pets must be greater than 0"


@dataclass
class Household:
    """
    A surveyed household.

    Created on intake with minimal fields and status PENDING, filled in by
    updates, and completed exactly once.
    """
    family_name: str
    address: str
    focal_point: FocalPoint
    id: Optional[str] = None
    slug: str = ""
    survey_status: SurveyStatus = SurveyStatus.PENDING
    date_surveyed: Optional[datetime] = None
    family_members: list[FamilyMember] = field(default_factory=list)
    number_of_cars: Optional[int] = None
    has_pets: Optional[bool] = None
    number_of_pets: Optional[int] = None
    housing_type: Optional[HousingType] = None
    environmental_practices: list[EnvironmentalPractice] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.slug:
            self.slug = build_slug(self.family_name, self.focal_point.email)

    @property
    def is_completed(self) -> bool:
        return self.survey_status == SurveyStatus.COMPLETED

    def apply_update(
        self,
        changes: dict[str, Any],
        allow_email_change: bool = False,
    ) -> None:
        """
        Apply a partial update.

        `changes` uses attribute names; a "focal_point" entry is itself a
        partial dict of "first_name" and/or "email". Only administrators
        (allow_email_change=True) may change the focal point email, and
        even then the slug keeps its original value.
        """
        self._apply(changes, allow_email_change)
        self._check_pet_count()
        self.updated_at = utcnow()

    def complete(self, survey: dict[str, Any], now: Optional[datetime] = None) -> None:
        """Record the survey answers and mark the survey completed."""
        if self.is_completed:
            raise ValidationError.for_field(
                "surveyStatus", "Survey has already been completed"
            )

        self._apply(survey, allow_email_change=False)

        errors = self.completion_errors()
        if errors:
            raise ValidationError("Survey is incomplete", errors=errors)

        if not self.has_pets:
            self.number_of_pets = None

        self.survey_status = SurveyStatus.COMPLETED
        self.date_surveyed = now or utcnow()
        self.updated_at = self.date_surveyed

    def completion_errors(self) -> list[dict[str, str]]:
        """Field-level reasons this household cannot be marked completed."""
        errors = []

        if not self.family_members:
            errors.append({
                "path": "familyMembers",
                "message": "At least one family member is required",
            })
        if self.number_of_cars is None:
            errors.append({"path": "numberOfCars", "message": "Number of cars is required"})
        if self.has_pets is None:
            errors.append({"path": "hasPets", "message": "Please state whether the household has pets"})
        elif self.has_pets and self.number_of_pets is None:
            errors.append({
                "path": "numberOfPets",
                "message": "Number of pets must be greater than 0 if hasPets is true",
            })
        if self.number_of_pets is not None and self.number_of_pets <= 0:
            errors.append({"path": "numberOfPets", "message": PET_COUNT_MESSAGE})
        if self.housing_type is None:
            errors.append({"path": "housingType", "message": "Housing type is required"})
        elif not self.housing_type.is_complete:
            errors.append({
                "path": "housingType.customValue",
                "message": "Custom housing type value is required when type is 'Other'",
            })

        return errors

    def set_picture(self, reference: StoredPhotoReference) -> None:
        self.focal_point.picture = reference
        self.updated_at = utcnow()

    def _apply(self, changes: dict[str, Any], allow_email_change: bool) -> None:
        changes = dict(changes)
        focal_changes = changes.pop("focal_point", None) or {}

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        new_email = focal_changes.get("email")
        if new_email is not None and new_email != self.focal_point.email and not allow_email_change:
            raise ValidationError.for_field(
                "focalPoint.email",
                "Focal point email can only be changed by an administrator",
            )

        for name, value in changes.items():
            setattr(self, name, value)

        if "first_name" in focal_changes:
            self.focal_point.first_name = focal_changes["first_name"]
        if new_email is not None:
            self.focal_point.email = new_email

    def _check_pet_count(self) -> None:
        if self.number_of_pets is not None and self.number_of_pets <= 0:
            raise ValidationError.for_field("numberOfPets", PET_COUNT_MESSAGE)
