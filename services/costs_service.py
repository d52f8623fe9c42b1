"""Service layer for recording costs and maintaining users' running totals."""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase # Type hint for database
from pymongo.errors import PyMongoError
from models.cost import Cost, CostCreate, Category, CATEGORY_ORDER
from services.errors import InputValidationError, UserNotFoundError, StoreError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("description", "category", "userid", "sum")
MISSING_FIELDS_MESSAGE = "Missing required fields: description, category, userid, sum"


def missing_fields(payload: CostCreate) -> List[str]:
    """Names of required fields that are absent. A `sum` of 0 is present."""
    missing = []
    for field in REQUIRED_FIELDS:
        value = getattr(payload, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def to_naive_utc(value: Optional[datetime]) -> datetime:
    """MongoDB stores naive UTC datetimes; aware inputs are converted first."""
    if value is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def add_cost(db: AsyncIOMotorDatabase, payload: CostCreate) -> Cost:
    """
    Validates and stores a new cost, then adds its sum to the owner's totalCost.
    - Missing fields -> InputValidationError
    - Unknown user -> UserNotFoundError
    - Category outside the fixed set -> InputValidationError
    - Any database failure -> StoreError
    The total is bumped with an atomic $inc after the insert. If that second
    write fails the cost stays stored and the total is stale.
    """
    missing = missing_fields(payload)
    if missing:
        logger.warning(f"Rejected cost: missing fields {missing}")
        raise InputValidationError(MISSING_FIELDS_MESSAGE)

    try:
        user_doc = await db.users.find_one({"id": payload.userid}, {"_id": 1})
    except PyMongoError as e:
        logger.error(f"Database error looking up user '{payload.userid}': {e}")
        raise StoreError(f"Database error looking up user: {e}")
    if not user_doc:
        logger.warning(f"Rejected cost: user '{payload.userid}' not found")
        raise UserNotFoundError()

    try:
        category = Category(payload.category)
    except ValueError:
        logger.warning(f"Rejected cost: invalid category '{payload.category}'")
        raise InputValidationError(
            f"Invalid category '{payload.category}'. Allowed categories: {', '.join(CATEGORY_ORDER)}"
        )

    cost = Cost(
        description=payload.description,
        category=category,
        userid=payload.userid,
        sum=payload.sum,
        created_at=to_naive_utc(payload.created_at),
    )
    cost_doc = cost.model_dump(exclude={"id"})

    try:
        result = await db.costs.insert_one(cost_doc)
    except PyMongoError as e:
        logger.error(f"Database error inserting cost for user '{cost.userid}': {e}")
        raise StoreError(f"Database error saving cost: {e}")
    cost.id = str(result.inserted_id)
    logger.info(f"Stored cost {cost.id} for user '{cost.userid}': {cost.category} {cost.sum}")

    try:
        update = await db.users.update_one({"id": cost.userid}, {"$inc": {"totalCost": cost.sum}})
    except PyMongoError as e:
        logger.error(f"Cost {cost.id} stored but totalCost update for user '{cost.userid}' failed: {e}")
        raise StoreError(f"Database error updating user total: {e}")
    if update.matched_count == 0:
        logger.warning(f"User '{cost.userid}' vanished before its total could be updated (cost {cost.id})")

    return cost
