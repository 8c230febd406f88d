"""
Core census logic.

Framework-agnostic: nothing here imports FastAPI, pymongo or boto3, so the
household rules and the photo pipeline can be tested in isolation.
"""
