"""Business logic services.

Service functions take a database session and the acting user id, run
parameterized SQL against the host tables, and raise ApiError subclasses
for the routes to turn into status codes.
"""

from restip.services.formatting import format_ready
from restip.services.messages import get_message_or_404, load_message, load_messages
from restip.services.users import get_user, get_users

__all__ = [
    "format_ready",
    "get_message_or_404",
    "load_message",
    "load_messages",
    "get_user",
    "get_users",
]
