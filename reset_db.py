# reset_db.py
from app.config import get_settings
from app.models.database import Base, build_engine, create_tables

if __name__ == "__main__":
    settings = get_settings()
    if settings.local_only:
        raise SystemExit("DATABASE_URL is not set. Nothing to reset in local-only mode.")

    engine = build_engine(settings.database_url)

    print("⚠️ Dropping all existing tables...")
    Base.metadata.drop_all(bind=engine)

    print("✅ Recreating tables from models...")
    create_tables(engine)

    print("✅ Database reset complete.")
