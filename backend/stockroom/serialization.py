from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from .time_utils import to_utc_z


def jsonable(value):
    """
    Render a document (or list of documents) for a JSON response.

    Decimal money becomes a float with two places, datetimes become ISO-8601 'Z'.
    """
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    return value
