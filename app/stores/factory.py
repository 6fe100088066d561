# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging

from app.config import Settings
from app.stores.base import StoreFactory
from app.stores.local_store import LocalStoreFactory
from app.stores.sql_store import SqlStoreFactory

logger = logging.getLogger(__name__)


def build_store_factory(settings: Settings) -> StoreFactory:
    """Shared SQL store when DATABASE_URL is set, otherwise the local-only store."""
    if settings.local_only:
        logger.warning(
            f"⚠️ DATABASE_URL is not set. Running in local-only mode (store: {settings.local_store_path or 'memory'})."
        )
        return LocalStoreFactory(settings.local_store_path)

    logger.info("🗄️ Using shared SQL store.")
    return SqlStoreFactory(settings.database_url)
