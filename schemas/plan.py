from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class GeneratePlanRequest(BaseModel):
    # Required fields are checked by the endpoint so a missing one is a 400.
    trip_id: Optional[str] = None
    title: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[float] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    travelers: Optional[int] = None


class GeneratePlanResponse(BaseModel):
    success: bool
    trip_id: str
    plan: Dict[str, Any]
    saved: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
