"""Pydantic models for the monthly report"""
from pydantic import BaseModel
from typing import Dict, List
from models.cost import Amount


class ReportEntry(BaseModel):
    """One cost as it appears inside a category bucket."""
    sum: Amount
    description: str
    day: int


class Report(BaseModel):
    """
    Month-scoped view of a user's costs.
    `costs` holds one single-key mapping per category, always all five,
    in the fixed category order.
    """
    userid: str
    year: int
    month: int
    costs: List[Dict[str, List[ReportEntry]]]
