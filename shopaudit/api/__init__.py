"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from shopaudit.api import app

    uvicorn shopaudit.api:app --reload
"""

from shopaudit.api.app import app

__all__ = ["app"]
