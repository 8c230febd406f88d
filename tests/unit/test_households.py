"""
Unit tests for the household domain logic.

These tests exercise the Household aggregate directly: no database,
no HTTP, no object storage.
"""

from datetime import date, datetime, timezone

import pytest

from census_surveyor.core.errors import ValidationError
from census_surveyor.core.households.models import (
    EnvironmentalPractice,
    FamilyMember,
    FocalPoint,
    Household,
    HousingType,
    HousingTypeOption,
    StoredPhotoReference,
    SurveyStatus,
    build_slug,
)


def make_household(**overrides) -> Household:
    fields = {
        "family_name": "Smith",
        "address": "12 Elm Street",
        "focal_point": FocalPoint(email="jane.smith@census.org", first_name="Jane"),
    }
    fields.update(overrides)
    return Household(**fields)


def full_survey(**overrides) -> dict:
    survey = {
        "family_members": [FamilyMember("Jane", "Smith", date(1985, 4, 2))],
        "number_of_cars": 1,
        "has_pets": True,
        "number_of_pets": 2,
        "housing_type": HousingType(HousingTypeOption.HOUSE),
        "environmental_practices": [EnvironmentalPractice.RECYCLING],
    }
    survey.update(overrides)
    return survey


def error_paths(exc_info) -> list[str]:
    return [error["path"] for error in exc_info.value.errors]


# ---------------------------------------------------------------------------
# Slug
# ---------------------------------------------------------------------------

class TestSlug:

    def test_slug_joins_family_name_and_email_local_part(self):
        assert build_slug("Smith", "a@b.com") == "smith-a"

    def test_slug_collapses_punctuation_and_spaces(self):
        assert build_slug("Van Der Berg", "jan.vdb@census.org") == "van-der-berg-jan-vdb"

    def test_household_derives_slug_on_creation(self):
        household = make_household()
        assert household.slug == "smith-jane-smith"

    def test_existing_slug_is_kept(self):
        household = make_household(slug="legacy-slug")
        assert household.slug == "legacy-slug"


# ---------------------------------------------------------------------------
# Housing type
# ---------------------------------------------------------------------------

class TestHousingType:

    def test_custom_value_rejected_unless_other(self):
        with pytest.raises(ValidationError) as exc_info:
            HousingType(HousingTypeOption.APARTMENT, custom_value="Loft")
        assert error_paths(exc_info) == ["housingType.customValue"]

    def test_other_accepts_custom_value(self):
        housing = HousingType(HousingTypeOption.OTHER, custom_value="Houseboat")
        assert housing.is_complete

    def test_blank_custom_value_is_treated_as_absent(self):
        housing = HousingType(HousingTypeOption.OTHER, custom_value="   ")
        assert housing.custom_value is None
        assert not housing.is_complete


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------

class TestApplyUpdate:

    def test_update_sets_fields(self):
        household = make_household()
        household.apply_update({"number_of_cars": 3, "address": "1 Oak Road"})

        assert household.number_of_cars == 3
        assert household.address == "1 Oak Road"

    def test_update_bumps_updated_at(self):
        household = make_household(updated_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        household.apply_update({"number_of_cars": 0})
        assert household.updated_at > datetime(2020, 1, 1, tzinfo=timezone.utc)

    def test_update_changes_focal_point_first_name(self):
        household = make_household()
        household.apply_update({"focal_point": {"first_name": "Janet"}})

        assert household.focal_point.first_name == "Janet"
        assert household.focal_point.email == "jane.smith@census.org"

    def test_general_update_refuses_email_change(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.apply_update({"focal_point": {"email": "new@census.org"}})

        assert error_paths(exc_info) == ["focalPoint.email"]
        assert household.focal_point.email == "jane.smith@census.org"

    def test_general_update_accepts_unchanged_email(self):
        household = make_household()
        household.apply_update({"focal_point": {"email": "jane.smith@census.org"}})
        assert household.focal_point.email == "jane.smith@census.org"

    def test_admin_update_changes_email_but_keeps_slug(self):
        household = make_household()
        original_slug = household.slug

        household.apply_update(
            {"focal_point": {"email": "jane@elsewhere.org"}},
            allow_email_change=True,
        )

        assert household.focal_point.email == "jane@elsewhere.org"
        assert household.slug == original_slug

    def test_update_cannot_touch_status(self):
        household = make_household()

        with pytest.raises(ValidationError, match="survey_status"):
            household.apply_update({"survey_status": SurveyStatus.COMPLETED})

        assert household.survey_status == SurveyStatus.PENDING

    def test_zero_pets_rejected_when_household_has_pets(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.apply_update({"has_pets": True, "number_of_pets": 0})

        assert error_paths(exc_info) == ["numberOfPets"]

    def test_zero_pets_rejected_without_pets(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.apply_update({"has_pets": False, "number_of_pets": 0})

        assert error_paths(exc_info) == ["numberOfPets"]


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestCompleteSurvey:

    def test_complete_marks_status_and_timestamp(self):
        household = make_household()
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        household.complete(full_survey(), now=now)

        assert household.survey_status == SurveyStatus.COMPLETED
        assert household.date_surveyed == now
        assert household.is_completed

    def test_pending_household_has_no_survey_date(self):
        assert make_household().date_surveyed is None

    def test_complete_reports_every_missing_answer(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.complete({})

        assert set(error_paths(exc_info)) == {
            "familyMembers", "numberOfCars", "hasPets", "housingType",
        }
        assert household.survey_status == SurveyStatus.PENDING

    def test_complete_requires_pet_count_when_household_has_pets(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.complete(full_survey(number_of_pets=None))

        assert error_paths(exc_info) == ["numberOfPets"]

    def test_complete_requires_custom_value_for_other(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.complete(full_survey(housing_type=HousingType(HousingTypeOption.OTHER)))

        assert error_paths(exc_info) == ["housingType.customValue"]

    def test_complete_rejects_zero_pets_without_pets(self):
        household = make_household()

        with pytest.raises(ValidationError) as exc_info:
            household.complete(full_survey(has_pets=False, number_of_pets=0))

        assert error_paths(exc_info) == ["numberOfPets"]
        assert household.survey_status == SurveyStatus.PENDING

    def test_complete_clears_pet_count_without_pets(self):
        household = make_household(number_of_pets=3)

        household.complete(full_survey(has_pets=False))

        assert household.number_of_pets is None

    def test_completed_survey_cannot_be_completed_again(self):
        household = make_household()
        first = datetime(2024, 5, 1, tzinfo=timezone.utc)
        household.complete(full_survey(), now=first)

        with pytest.raises(ValidationError) as exc_info:
            household.complete(full_survey())

        assert error_paths(exc_info) == ["surveyStatus"]
        assert household.date_surveyed == first

    def test_complete_refuses_email_change(self):
        household = make_household()

        with pytest.raises(ValidationError):
            household.complete(full_survey(focal_point={"email": "other@census.org"}))


# ---------------------------------------------------------------------------
# Photo reference
# ---------------------------------------------------------------------------

class TestStoredPhotoReference:

    def test_url_is_virtual_hosted_style(self):
        ref = StoredPhotoReference("dev-census-surveyor-0", "us-west-2", "focal-point-photos/photo_1.jpg")
        assert ref.url == (
            "https://dev-census-surveyor-0.s3.us-west-2.amazonaws.com/"
            "focal-point-photos/photo_1.jpg"
        )

    def test_references_compare_by_value(self):
        a = StoredPhotoReference("bucket", "us-east-1", "k")
        b = StoredPhotoReference("bucket", "us-east-1", "k")
        assert a == b
        assert a != StoredPhotoReference("bucket", "eu-west-1", "k")

    def test_set_picture_exposes_url_on_focal_point(self):
        household = make_household()
        ref = StoredPhotoReference("bucket", "us-east-1", "photos/p.png")

        household.set_picture(ref)

        assert household.focal_point.picture == ref
        assert household.focal_point.picture_url == ref.url
