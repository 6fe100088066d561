# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from .base import CheckInStore, StoreFactory, UNSET
from .local_store import LocalStore, LocalStoreFactory
from .sql_store import SqlStore, SqlStoreFactory
from .factory import build_store_factory
