from contextvars import ContextVar
from typing import Optional

# Set by the HTTP layer per request; attached to DAL query spans when present.
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
