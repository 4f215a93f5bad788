import logging
from datetime import datetime

import bson
from bson.errors import InvalidId
from flask_login import UserMixin

from db import users_collection

logger = logging.getLogger(__name__)


class User(UserMixin):
    def __init__(self, user_data):
        # Basic user info
        self.id = str(user_data['_id'])
        self.username = user_data.get('username')
        self.role = (user_data.get('role') or '').lower()
        self.name = user_data.get('name')
        self.email = user_data.get('email')
        self.status = user_data.get('status')
        self.employee_code = user_data.get('employee_code')

        # Clean Slate RBAC: authority / geographic / departments
        self.access = user_data.get('access') or {}
        self.is_executive = bool(user_data.get('is_executive', False))
        self.home_branch = self.access.get('home_branch') or user_data.get('branch')

        self.date_registered = self._convert_to_datetime(user_data.get('date_registered'))

    def _convert_to_datetime(self, value):
        """
        Attempts to convert a value to a datetime object.
        If it's already a datetime or cannot be converted, it returns the original value.
        """
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                try:
                    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    pass
        return value

    @property
    def is_active(self):
        return str(self.status or '').strip().lower() not in ('not active', 'inactive', 'disabled')

    def __repr__(self):
        return f"<User {self.username}, {self.role}>"


def get_user_by_id(user_id):
    try:
        oid = bson.ObjectId(user_id)
    except (InvalidId, TypeError):
        logger.warning("Invalid user id %r", user_id)
        return None
    user_data = users_collection.find_one({'_id': oid})
    if not user_data:
        logger.info("User with ID %s not found.", user_id)
        return None
    return User(user_data)

