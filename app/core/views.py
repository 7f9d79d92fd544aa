"""
View counter - once-a-day view deduplication per browser.

The `view` cookie holds a JSON list of "<table>:<id>" keys the browser has
already been counted for. Unseen keys bump `view_count` and are appended;
the cookie expires at the end of the current day.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Query, Request, Response
from sqlalchemy import text

from app.db.mysql import get_db_session

logger = logging.getLogger(__name__)

VIEW_COOKIE = "view"
COUNTED_TABLES = {"job_posting", "senier_project", "board_content"}


def read_viewed(raw: Optional[str]) -> List[str]:
    """Parse the cookie; anything malformed counts as nothing viewed."""
    if not raw:
        return []
    try:
        viewed = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(viewed, list):
        return []
    return [str(key) for key in viewed]


def seconds_until_end_of_day(now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
    return max(int((end_of_day - now).total_seconds()), 1)


def increment_view_count(table: str, row_id: str) -> bool:
    """Returns False when no such row exists."""
    if table not in COUNTED_TABLES:
        raise ValueError(f"View counting is not enabled for {table}")
    with get_db_session() as db:
        result = db.execute(
            text(f"UPDATE {table} SET view_count = view_count + 1 WHERE id = :id"),
            {"id": row_id}
        )
        return result.rowcount > 0


def count_view(table: str):
    """
    Build a route dependency that counts one view of `?id=` per day.

    Usage:
        @router.get("/detail")
        async def detail(id: str, _=Depends(count_view("job_posting"))):
            ...
    """
    if table not in COUNTED_TABLES:
        raise ValueError(f"View counting is not enabled for {table}")

    async def dependency(request: Request, response: Response, id: Optional[str] = Query(None)):
        if not id:
            return

        viewed = read_viewed(request.cookies.get(VIEW_COOKIE))
        key = f"{table}:{id}"
        if key in viewed:
            return

        try:
            counted = increment_view_count(table, id)
        except Exception:
            logger.exception("View count update failed", extra={"table": table, "row_id": id})
            return

        if not counted:
            return

        viewed.append(key)
        response.set_cookie(
            VIEW_COOKIE,
            json.dumps(viewed),
            max_age=seconds_until_end_of_day(),
            httponly=True,
        )

    return dependency
