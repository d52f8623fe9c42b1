"""API Routes for costs, reports and users"""
from fastapi import APIRouter, HTTPException, Body, Depends, Request, Query
from typing import List, Annotated, Optional
from services import costs_service, reports_service, users_service
from services.errors import CostManagerError, StoreError
from models.cost import Cost, CostCreate
from models.report import Report
from models.user import UserSummary, TeamMember
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

TEAM = [
    TeamMember(first_name="Roee", last_name="Levi"),
    TeamMember(first_name="Omer", last_name="Trabulski"),
]

# --- Dependency Function ---
def get_database(request: Request) -> AsyncIOMotorDatabase:
    """Dependency to get the MongoDB database handle from the request state."""
    db = getattr(request.state, "db", None)
    if db is None:
        logger.error("Database not found in application state. Check MongoDB connection.")
        raise StoreError("Database service not available.")
    return db

# Type hint for the dependency
DatabaseDep = Annotated[AsyncIOMotorDatabase, Depends(get_database)]

# --- API Routes ---

@router.post("/add", response_model=Cost, summary="Add Cost", description="Records a cost for an existing user and adds its sum to the user's running total.")
async def add_cost(db: DatabaseDep, payload: Annotated[CostCreate, Body(...)]) -> Cost:
    logger.info(f"POST /add endpoint called for user '{payload.userid}'")
    try:
        return await costs_service.add_cost(db, payload)
    except CostManagerError:
        raise # Rendered by the app-level handler
    except Exception as e:
        logger.exception(f"Unexpected error adding cost: {e}")
        raise HTTPException(status_code=500, detail="An unexpected server error occurred while adding the cost.")

@router.get("/report", response_model=Report, summary="Monthly Report", description="Returns a user's costs for one month grouped by category.")
async def get_report(
    db: DatabaseDep,
    userid: Optional[str] = Query(None, alias="id", description="User id."),
    year: Optional[str] = Query(None, description="Four digit year, e.g. 2025."),
    month: Optional[str] = Query(None, description="Month number, 1-12."),
) -> Report:
    logger.info(f"GET /report endpoint called: id={userid} year={year} month={month}")
    try:
        return await reports_service.get_report(db, userid, year, month)
    except CostManagerError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error building report: {e}")
        raise HTTPException(status_code=500, detail="An unexpected server error occurred while building the report.")

@router.get("/users/{user_id}", response_model=UserSummary, summary="User Summary", description="Returns a user's name and running cost total.")
async def get_user(db: DatabaseDep, user_id: str) -> UserSummary:
    logger.info(f"GET /users/{user_id} endpoint called")
    try:
        return await users_service.get_user_summary(db, user_id)
    except CostManagerError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="An unexpected server error occurred while fetching the user.")

@router.get("/about", response_model=List[TeamMember], summary="About", description="Lists the development team.")
async def about() -> List[TeamMember]:
    return TEAM
