#!/usr/bin/env python3
"""
Seed the households collection with sample data.

Usage:
    python scripts/seed_households.py --import     # add sample households
    python scripts/seed_households.py --delete     # remove all households

Records in the data file use the same camelCase shape as the API. Records
marked "surveyStatus": "completed" go through survey completion, so they
must carry a complete survey.

Requires:
    - MONGODB_URI (and optionally MONGODB_DATABASE) in the environment or .env
"""

import argparse
import json
import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from pydantic import ValidationError as RequestValidationError
from pymongo.errors import PyMongoError

from census_surveyor.api.routes.households import HouseholdCreate, HouseholdUpdate
from census_surveyor.config.settings import get_settings
from census_surveyor.core.errors import ValidationError
from census_surveyor.core.households.models import Household, SurveyStatus
from census_surveyor.infrastructure.mongo.client import MongoConfig, create_mongo_client
from census_surveyor.infrastructure.mongo.repositories.households import HouseholdRepository

DEFAULT_DATA_FILE = Path(__file__).parent / "data" / "households.json"

INTAKE_FIELDS = {"familyName", "address", "focalPoint"}


def build_household(record: dict) -> Household:
    """Turn one data-file record into a Household, applying the survey rules."""
    record = dict(record)
    status = SurveyStatus(record.pop("surveyStatus", SurveyStatus.PENDING.value))

    household = HouseholdCreate.model_validate(record).to_domain()

    answers = {key: value for key, value in record.items() if key not in INTAKE_FIELDS}
    changes = HouseholdUpdate.model_validate(answers).to_changes()

    if status == SurveyStatus.COMPLETED:
        household.complete(changes)
    else:
        household.apply_update(changes)

    return household


def load_households(path: Path) -> list[Household]:
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)

    households = []
    for index, record in enumerate(records):
        try:
            households.append(build_household(record))
        except (RequestValidationError, ValidationError, ValueError) as e:
            print(f"ERROR: record {index} ({record.get('familyName', '?')}) is invalid: {e}")
            sys.exit(1)
    return households


def open_repository() -> tuple:
    settings = get_settings()
    client = create_mongo_client(
        config=MongoConfig(uri=settings.mongodb_uri, database=settings.mongodb_database),
        mock_mode=settings.mongodb_mock_mode,
    )
    print(f"Using database {settings.mongodb_database}")
    return client, HouseholdRepository(client[settings.mongodb_database])


def import_data(path: Path) -> bool:
    households = load_households(path)
    client, repository = open_repository()

    try:
        repository.ensure_indexes()
        for household in households:
            repository.add(household)
            print(f"[OK] Inserted: {household.slug} ({household.survey_status.value})")
    except PyMongoError as e:
        print(f"ERROR importing data: {e}")
        return False
    finally:
        client.close()

    print(f"\n=== Data Imported: {len(households)} households ===")
    return True


def delete_data() -> bool:
    client, repository = open_repository()

    try:
        deleted = repository.delete_all()
    except PyMongoError as e:
        print(f"ERROR deleting data: {e}")
        return False
    finally:
        client.close()

    print(f"=== Data Destroyed: {deleted} households ===")
    return True


def main():
    parser = argparse.ArgumentParser(description="Seed the households collection")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("-i", "--import", dest="import_data", action="store_true",
                        help="Add sample households to the database")
    action.add_argument("-d", "--delete", action="store_true",
                        help="Remove all households from the database")
    parser.add_argument("--file", default=str(DEFAULT_DATA_FILE), help="Households JSON file")
    args = parser.parse_args()

    if args.import_data:
        path = Path(args.file)
        if not path.exists():
            print(f"ERROR: Cannot find {args.file}")
            sys.exit(1)
        success = import_data(path)
    else:
        success = delete_data()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
