"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all runs
  2. Other modules can import from beep.models directly
"""

from beep.models.user import User  # noqa: F401
from beep.models.enrollment import Enrollment  # noqa: F401
from beep.models.linked_account import LinkedAccount  # noqa: F401
from beep.models.email_log import EmailLog  # noqa: F401
