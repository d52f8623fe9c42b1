"""Pydantic models for Cost data"""
from enum import Enum
from pydantic import BaseModel, AllowInfNan, StrictInt, Strict
from datetime import datetime
from typing import Annotated, Optional, Union


class Category(str, Enum):
    """The closed set of expense categories, in report order."""
    FOOD = "food"
    HEALTH = "health"
    HOUSING = "housing"
    SPORT = "sport"
    EDUCATION = "education"


# Report buckets are emitted in this order
CATEGORY_ORDER = [c.value for c in Category]

# Money amounts: real numbers only. Booleans, numeric strings, NaN and
# infinities are rejected so a stored sum always adds cleanly to totalCost.
Amount = Union[StrictInt, Annotated[float, Strict(), AllowInfNan(False)]]


class CostCreate(BaseModel):
    """
    Incoming payload for POST /api/add.
    Every field is optional at this level so the recorder can report
    missing fields and unknown categories itself, in its own order.
    """
    description: Optional[str] = None
    category: Optional[str] = None
    userid: Optional[str] = None
    sum: Optional[Amount] = None
    created_at: Optional[datetime] = None


class Cost(BaseModel):
    """
    A single recorded expense belonging to a user.
    """
    id: Optional[str] = None
    description: str
    category: Category
    userid: str
    sum: Amount
    created_at: datetime

    class Config:
        populate_by_name = True
        from_attributes = True
        use_enum_values = True
