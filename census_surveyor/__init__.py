"""
Census Surveyor - household census intake and survey API.

This package contains the complete application:
- core: Framework-agnostic household rules and photo pipeline
- infrastructure: MongoDB and S3 integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
