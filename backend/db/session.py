"""Database session management"""
import os
from typing import Generator
from pathlib import Path
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

# Load environment variables for LOCAL development only
# In Lambda, env vars are set via CloudFormation - don't override them with .env files
# AWS_LAMBDA_FUNCTION_NAME is set by Lambda runtime
_is_lambda = os.getenv("AWS_LAMBDA_FUNCTION_NAME") is not None

if not _is_lambda:
    # Local development: load .env.local (takes precedence over .env)
    _backend_dir = Path(__file__).parent.parent
    env_local = _backend_dir / '.env.local'
    env_file = _backend_dir / '.env'

    if env_local.exists():
        load_dotenv(env_local, override=True)
    elif env_file.exists():
        load_dotenv(env_file, override=True)


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite (tests, local runs) needs check_same_thread off because the
    TestClient and the worker pool touch it from other threads; in-memory
    SQLite additionally needs a single shared connection.
    """
    if not database_url:
        raise ValueError("DATABASE_URL not found in environment variables")

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,   # Recycle connections after 1 hour
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine. Owned by ScraperContext."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency function to get database session from the app's ScraperContext.

    Usage in FastAPI:
        from fastapi import Depends
        from db.session import get_db

        @router.get("/companies")
        def read_companies(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()
