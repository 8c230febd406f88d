"""
Unit tests for the household repository, run against the in-memory
MongoDB client.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from census_surveyor.core.households.models import (
    FamilyMember,
    FocalPoint,
    Household,
    HousingType,
    HousingTypeOption,
    StoredPhotoReference,
    SurveyStatus,
)
from census_surveyor.infrastructure.mongo.client import MockMongoClient
from census_surveyor.infrastructure.mongo.repositories.households import (
    HouseholdNotFoundError,
    HouseholdRepository,
    from_document,
    to_document,
)


@pytest.fixture
def repository():
    repo = HouseholdRepository(MockMongoClient()["census-surveyor"])
    repo.ensure_indexes()
    return repo


def make_household(family_name="Smith", email="jane@census.org", **overrides) -> Household:
    return Household(
        family_name=family_name,
        address="12 Elm Street",
        focal_point=FocalPoint(email=email, first_name="Jane"),
        **overrides,
    )


class TestHouseholdRepository:

    def test_add_assigns_object_id(self, repository):
        household = repository.add(make_household())

        assert ObjectId.is_valid(household.id)
        assert repository.get(household.id).slug == "smith-jane"

    def test_duplicate_slug_is_rejected(self, repository):
        repository.add(make_household())

        with pytest.raises(DuplicateKeyError):
            repository.add(make_household())

    def test_get_unknown_id(self, repository):
        with pytest.raises(HouseholdNotFoundError):
            repository.get(str(ObjectId()))

    def test_get_malformed_id_is_not_found(self, repository):
        with pytest.raises(HouseholdNotFoundError) as exc_info:
            repository.get("not-an-id")
        assert exc_info.value.status_code == 404

    def test_list_is_newest_first(self, repository):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        repository.add(make_household("Older", created_at=base))
        repository.add(make_household("Newer", created_at=base + timedelta(days=1)))

        names = [h.family_name for h in repository.list_all()]

        assert names == ["Newer", "Older"]

    def test_list_filters_by_status(self, repository):
        repository.add(make_household("Pending"))
        repository.add(make_household("Done", survey_status=SurveyStatus.COMPLETED))

        completed = repository.list_all(SurveyStatus.COMPLETED)

        assert [h.family_name for h in completed] == ["Done"]

    def test_save_persists_changes(self, repository):
        household = repository.add(make_household())
        household.apply_update({"number_of_cars": 2})

        repository.save(household)

        assert repository.get(household.id).number_of_cars == 2

    def test_save_unknown_household(self, repository):
        household = make_household()
        household.id = str(ObjectId())

        with pytest.raises(HouseholdNotFoundError):
            repository.save(household)

    def test_delete(self, repository):
        household = repository.add(make_household())

        repository.delete(household.id)

        with pytest.raises(HouseholdNotFoundError):
            repository.get(household.id)

    def test_delete_unknown_household(self, repository):
        with pytest.raises(HouseholdNotFoundError):
            repository.delete(str(ObjectId()))

    def test_delete_all(self, repository):
        repository.add(make_household("One"))
        repository.add(make_household("Two"))

        assert repository.delete_all() == 2
        assert repository.list_all() == []

    def test_health_check_pings(self, repository):
        repository.health_check()


class TestDocumentTranslation:

    def test_round_trip_keeps_survey_answers_and_picture(self):
        household = make_household(
            id=str(ObjectId()),
            family_members=[FamilyMember("Jane", "Smith", date(1990, 2, 28))],
            number_of_cars=1,
            has_pets=False,
            housing_type=HousingType(HousingTypeOption.OTHER, custom_value="Houseboat"),
        )
        household.set_picture(StoredPhotoReference("dev-census-surveyor-0", "us-west-2", "p/k.jpg"))

        document = to_document(household)
        document["_id"] = ObjectId(household.id)
        restored = from_document(document)

        assert restored == household

    def test_document_uses_camel_case_and_picture_url(self):
        household = make_household()
        household.set_picture(StoredPhotoReference("b", "us-east-1", "k.jpg"))

        document = to_document(household)

        assert document["familyName"] == "Smith"
        assert document["focalPoint"]["pictureUrl"] == "https://b.s3.us-east-1.amazonaws.com/k.jpg"
        assert document["focalPoint"]["picture"] == {"bucket": "b", "region": "us-east-1", "key": "k.jpg"}

    def test_birth_date_is_stored_as_utc_midnight(self):
        household = make_household(family_members=[FamilyMember("A", "B", date(2001, 7, 4))])

        member = to_document(household)["familyMembers"][0]

        assert member["birthDate"] == datetime(2001, 7, 4, tzinfo=timezone.utc)

    def test_legacy_string_housing_type(self):
        document = to_document(make_household())
        document["_id"] = ObjectId()
        document["housingType"] = "Duplex"

        assert from_document(document).housing_type == HousingType(HousingTypeOption.DUPLEX)
