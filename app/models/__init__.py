# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


from .user import User
from .check_in import CheckIn
from .emergency_alert import EmergencyAlert
from .notification import NotificationLog
