"""
Household survey domain: the Household aggregate and its parts.
"""

from .models import (
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

__all__ = [
    "EnvironmentalPractice",
    "FamilyMember",
    "FocalPoint",
    "Household",
    "HousingType",
    "HousingTypeOption",
    "StoredPhotoReference",
    "SurveyStatus",
    "build_slug",
]
