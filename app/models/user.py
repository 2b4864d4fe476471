# app/models/user.py
# Note: User is defined in core/auth.py next to the token helpers.
# It is re-exported here so every table can be loaded from app.models.

from app.core.auth import User

__all__ = ["User"]
