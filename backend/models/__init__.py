from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass

# Import all models here for Alembic autogenerate
from models.discovered_company import CatalogCompany
from models.scrape_run import ScrapeRun
from models.work_unit import WorkUnit
from models.job_posting import JobPosting

__all__ = ["Base", "JSONVariant", "CatalogCompany", "ScrapeRun", "WorkUnit", "JobPosting"]
