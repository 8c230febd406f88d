"""
MongoDB repository for households.

The repository:
1. Translates between Household domain objects and camelCase documents
2. Owns the collection indexes
3. Maps unknown or malformed ids to HouseholdNotFoundError

Route handlers never touch pymongo; they ask the repository for what they
need in domain terms.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING

from ....core.errors import NotFoundError
from ....core.households.models import (
    EnvironmentalPractice,
    FamilyMember,
    FocalPoint,
    Household,
    HousingType,
    HousingTypeOption,
    StoredPhotoReference,
    SurveyStatus,
)

logger = logging.getLogger(__name__)


class HouseholdNotFoundError(NotFoundError):
    """Raised when a requested household doesn't exist."""

    def __init__(self, household_id: str) -> None:
        super().__init__(f"Household not found with id of {household_id}")
        self.household_id = household_id


class HouseholdRepository:
    """
    Repository for household persistence.

    - add: insert a new household and assign its id
    - get: load one household by id
    - list_all: all households, newest first, optionally by survey status
    - save: replace an existing household
    - delete / delete_all: remove households
    """

    COLLECTION = "households"

    def __init__(self, database) -> None:
        """
        Args:
            database: pymongo Database (or the in-memory mock)
        """
        self._database = database
        self._collection = database[self.COLLECTION]

    def health_check(self) -> None:
        """Round-trip to the server; raises if it is unreachable."""
        self._database.command("ping")

    def ensure_indexes(self) -> None:
        """Create the unique slug index and the focal point email lookup index."""
        self._collection.create_index([("slug", ASCENDING)], unique=True)
        self._collection.create_index([("focalPoint.email", ASCENDING)])

    def add(self, household: Household) -> Household:
        """
        Insert a new household.

        Raises pymongo's DuplicateKeyError when the slug is taken.
        """
        document = to_document(household)
        result = self._collection.insert_one(document)
        household.id = str(result.inserted_id)

        logger.info(
            "Created household",
            extra={"household_id": household.id, "slug": household.slug},
        )
        return household

    def get(self, household_id: str) -> Household:
        document = self._collection.find_one({"_id": _object_id(household_id)})
        if document is None:
            raise HouseholdNotFoundError(household_id)
        return from_document(document)

    def list_all(self, survey_status: Optional[SurveyStatus] = None) -> list[Household]:
        query = {"surveyStatus": survey_status.value} if survey_status else {}
        cursor = self._collection.find(query).sort("createdAt", DESCENDING)
        return [from_document(document) for document in cursor]

    def save(self, household: Household) -> None:
        """Replace the stored household with the given state."""
        if household.id is None:
            raise ValueError("Household has not been added yet")

        result = self._collection.replace_one(
            {"_id": _object_id(household.id)},
            to_document(household),
        )
        if result.matched_count == 0:
            raise HouseholdNotFoundError(household.id)

    def delete(self, household_id: str) -> None:
        result = self._collection.delete_one({"_id": _object_id(household_id)})
        if result.deleted_count == 0:
            raise HouseholdNotFoundError(household_id)

        logger.info("Deleted household", extra={"household_id": household_id})

    def delete_all(self) -> int:
        result = self._collection.delete_many({})
        return result.deleted_count


def _object_id(household_id: str) -> ObjectId:
    # A malformed id cannot name a stored household.
    try:
        return ObjectId(household_id)
    except (InvalidId, TypeError):
        raise HouseholdNotFoundError(household_id)


# ---------------------------------------------------------------------------
# Document translation
# ---------------------------------------------------------------------------

def _date_to_datetime(value: date) -> datetime:
    # BSON has no date-only type.
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_document(household: Household) -> dict[str, Any]:
    """Household -> MongoDB document (without _id)."""
    focal_point: dict[str, Any] = {
        "email": household.focal_point.email,
        "firstName": household.focal_point.first_name,
        "pictureUrl": household.focal_point.picture_url,
        "picture": None,
    }
    picture = household.focal_point.picture
    if picture:
        focal_point["picture"] = {
            "bucket": picture.bucket,
            "region": picture.region,
            "key": picture.key,
        }

    housing_type = None
    if household.housing_type:
        housing_type = {
            "value": household.housing_type.value.value,
            "customValue": household.housing_type.custom_value,
        }

    return {
        "slug": household.slug,
        "familyName": household.family_name,
        "address": household.address,
        "focalPoint": focal_point,
        "surveyStatus": household.survey_status.value,
        "dateSurveyed": household.date_surveyed,
        "familyMembers": [
            {
                "firstName": member.first_name,
                "lastName": member.last_name,
                "birthDate": _date_to_datetime(member.birth_date),
            }
            for member in household.family_members
        ],
        "numberOfCars": household.number_of_cars,
        "hasPets": household.has_pets,
        "numberOfPets": household.number_of_pets,
        "housingType": housing_type,
        "environmentalPractices": [p.value for p in household.environmental_practices],
        "createdAt": household.created_at,
        "updatedAt": household.updated_at,
    }


def _housing_type_from_document(value: Any) -> Optional[HousingType]:
    if not value:
        return None
    # Older records stored the housing type as a bare string.
    if isinstance(value, str):
        return HousingType(HousingTypeOption(value))
    return HousingType(
        HousingTypeOption(value["value"]),
        custom_value=value.get("customValue"),
    )


def _birth_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def from_document(document: dict[str, Any]) -> Household:
    """MongoDB document -> Household."""
    focal = document.get("focalPoint") or {}
    picture = focal.get("picture")

    return Household(
        id=str(document["_id"]),
        slug=document["slug"],
        family_name=document["familyName"],
        address=document["address"],
        focal_point=FocalPoint(
            email=focal["email"],
            first_name=focal.get("firstName"),
            picture=StoredPhotoReference(**picture) if picture else None,
        ),
        survey_status=SurveyStatus(document.get("surveyStatus", SurveyStatus.PENDING.value)),
        date_surveyed=_as_utc(document.get("dateSurveyed")),
        family_members=[
            FamilyMember(
                first_name=member["firstName"],
                last_name=member["lastName"],
                birth_date=_birth_date(member["birthDate"]),
            )
            for member in document.get("familyMembers") or []
        ],
        number_of_cars=document.get("numberOfCars"),
        has_pets=document.get("hasPets"),
        number_of_pets=document.get("numberOfPets"),
        housing_type=_housing_type_from_document(document.get("housingType")),
        environmental_practices=[
            EnvironmentalPractice(value)
            for value in document.get("environmentalPractices") or []
        ],
        created_at=_as_utc(document["createdAt"]),
        updated_at=_as_utc(document["updatedAt"]),
    )
