"""Pydantic models for User data"""
from pydantic import BaseModel
from datetime import date
from typing import Optional, Union


class User(BaseModel):
    id: str
    first_name: str
    last_name: str
    birthday: Optional[date] = None
    marital_status: Optional[str] = None
    totalCost: Union[int, float] = 0

    class Config:
        populate_by_name = True
        from_attributes = True


class UserSummary(BaseModel):
    """Public projection of a user returned by GET /api/users/{id}."""
    id: str
    first_name: str
    last_name: str
    total: Union[int, float]


class TeamMember(BaseModel):
    first_name: str
    last_name: str
