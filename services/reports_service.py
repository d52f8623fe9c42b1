"""Service layer for the monthly, category-grouped cost report."""
import logging
from datetime import datetime, MINYEAR, MAXYEAR
from typing import Dict, List, Tuple, Union
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from models.cost import CATEGORY_ORDER
from models.report import Report, ReportEntry
from services.errors import InputValidationError, StoreError

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open interval [first of month, first of next month). `month` is 1-based."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def parse_report_params(userid, year, month) -> Tuple[str, int, int]:
    """Checks presence and parses year/month (ints or base-10 strings)."""
    if not userid or year is None or month is None or year == "" or month == "":
        raise InputValidationError("Missing query params: id, year, month")
    try:
        year_int = int(str(year).strip(), 10)
        month_int = int(str(month).strip(), 10)
    except ValueError:
        raise InputValidationError("Invalid year or month")
    if not 1 <= month_int <= 12 or not MINYEAR <= year_int <= MAXYEAR:
        raise InputValidationError("Invalid year or month")
    # December needs year + 1 for its upper bound
    if month_int == 12 and year_int == MAXYEAR:
        raise InputValidationError("Invalid year or month")
    return userid, year_int, month_int


async def get_report(
    db: AsyncIOMotorDatabase,
    userid: str,
    year: Union[int, str],
    month: Union[int, str]
) -> Report:
    """
    Returns the user's costs created in the given month, bucketed by category.
    All five categories are always present, in fixed order. Entries inside a
    bucket keep insertion order.
    """
    userid, year_int, month_int = parse_report_params(userid, year, month)
    start, end = month_bounds(year_int, month_int)
    logger.debug(f"Building report for user '{userid}' {year_int}-{month_int:02d} [{start} .. {end})")

    buckets: Dict[str, List[ReportEntry]] = {category: [] for category in CATEGORY_ORDER}
    query = {"userid": userid, "created_at": {"$gte": start, "$lt": end}}
    try:
        cursor = db.costs.find(query, sort=[("_id", 1)])
        async for doc in cursor:
            bucket = buckets.get(doc.get("category"))
            if bucket is None:
                logger.warning(f"Skipping cost {doc.get('_id')} with unknown category '{doc.get('category')}'")
                continue
            bucket.append(ReportEntry(
                sum=doc["sum"],
                description=doc["description"],
                day=doc["created_at"].day,
            ))
    except PyMongoError as e:
        logger.error(f"Database error building report for user '{userid}': {e}")
        raise StoreError(f"Database error fetching costs: {e}")

    logger.info(f"Report for user '{userid}' {year_int}-{month_int:02d}: "
                f"{sum(len(entries) for entries in buckets.values())} costs")
    return Report(
        userid=userid,
        year=year_int,
        month=month_int,
        costs=[{category: buckets[category]} for category in CATEGORY_ORDER],
    )
