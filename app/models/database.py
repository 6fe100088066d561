# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# ✅ Base model
Base = declarative_base()


def build_engine(database_url: str):
    """Engine for the shared store. SQLite URLs get the settings tests and demos need."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Single shared in-memory database across sessions
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    # ✅ Engine with Supabase Transaction Pooler
    return create_engine(
        database_url,
        pool_size=10,          # Keep 10 connections open
        max_overflow=20,       # Allow 20 extra if under load
        pool_recycle=1800,     # Recycle every 30 mins
        pool_pre_ping=True     # Validate before using connection
    )


def build_session_factory(engine):
    # ✅ Session factory
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    from app import models  # noqa: F401  registers all models
    Base.metadata.create_all(bind=engine)
