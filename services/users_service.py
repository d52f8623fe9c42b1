"""Service layer for user lookups and bootstrap of the users collection."""
import logging
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError
from models.user import User, UserSummary
from services.errors import UserNotFoundError, StoreError

logger = logging.getLogger(__name__)


async def get_user_summary(db: AsyncIOMotorDatabase, userid: str) -> UserSummary:
    """Projects a user to {id, first_name, last_name, total}."""
    try:
        doc = await db.users.find_one({"id": userid}, {"_id": 0})
    except PyMongoError as e:
        logger.error(f"Database error fetching user '{userid}': {e}")
        raise StoreError(f"Database error fetching user: {e}")
    if not doc:
        logger.warning(f"User '{userid}' not found")
        raise UserNotFoundError()
    return UserSummary(
        id=doc["id"],
        first_name=doc["first_name"],
        last_name=doc["last_name"],
        total=doc.get("totalCost", 0),
    )


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await db.users.create_index([("id", ASCENDING)], unique=True)
    await db.costs.create_index([("userid", ASCENDING), ("created_at", ASCENDING)])
    logger.info("MongoDB indexes ensured.")


async def ensure_default_user(db: AsyncIOMotorDatabase, user: User) -> bool:
    """Inserts `user` unless a user with the same id exists. Returns True if created."""
    existing = await db.users.find_one({"id": user.id}, {"_id": 1})
    if existing:
        logger.info(f"Default user '{user.id}' already exists.")
        return False

    user_doc = user.model_dump()
    # BSON has no date type
    if user.birthday is not None:
        user_doc["birthday"] = datetime.combine(user.birthday, datetime.min.time())
    await db.users.insert_one(user_doc)
    logger.info(f"Default user '{user.id}' created.")
    return True
