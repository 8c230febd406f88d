"""
Fixtures for API tests.

The app runs with in-memory MongoDB and S3, so these tests need no
external services. Environment variables are set before the app is
imported because the module-level app reads settings at import time.
"""

import io
import os

os.environ["MONGODB_MOCK_MODE"] = "true"
os.environ["S3_MOCK_MODE"] = "true"
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from census_surveyor.api.dependencies import close_clients, get_storage_client
from census_surveyor.config.settings import get_settings
from census_surveyor.main import app


@pytest.fixture
def client():
    get_settings.cache_clear()
    close_clients()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def storage(client):
    """The shared in-memory object store the app uploads to."""
    return get_storage_client(get_settings())


@pytest.fixture
def household(client):
    response = client.post("/api/v1/households", json={
        "familyName": "Smith",
        "address": "12 Elm Street",
        "focalPoint": {"email": "jane.smith@census.org", "firstName": "Jane"},
    })
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def jpeg():
    buffer = io.BytesIO()
    Image.new("RGB", (48, 32), (120, 160, 90)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def survey():
    return {
        "familyMembers": [
            {"firstName": "Jane", "lastName": "Smith", "birthDate": "1985-04-02"},
            {"firstName": "Tom", "lastName": "Smith", "birthDate": "2015-09-17"},
        ],
        "numberOfCars": 1,
        "hasPets": True,
        "numberOfPets": 2,
        "housingType": {"value": "House"},
        "environmentalPractices": ["Recycling", "Conserving water"],
    }
