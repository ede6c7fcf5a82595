from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import resolve_user
from core.config import settings
from core.errors import PlanGenerationError, ValidationFailedError
from core.logging import logger
from db.database import get_db
from schemas.plan import GeneratePlanRequest, GeneratePlanResponse
from services import trip_planner
from services.plan_store import save_generated_plan
from services.trip_service import ensure_trip_access

router = APIRouter(tags=["plan"])


@router.post("/generate-trip-plan", response_model=GeneratePlanResponse)
async def generate_trip_plan(
    request: GeneratePlanRequest,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    if not settings.GEMINI_API_KEY:
        raise PlanGenerationError(
            "Gemini API key not configured. Please set GEMINI_API_KEY in the environment."
        )

    user = await resolve_user(db, authorization)

    missing = trip_planner.missing_fields(request)
    if missing:
        raise ValidationFailedError(
            "Missing required fields: trip_id, title, start_date, end_date",
            details={"missing": missing},
        )
    await ensure_trip_access(db, request.trip_id, user.id, write=True)

    plan = await trip_planner.generate_travel_plan(request)
    saved = await save_generated_plan(
        db, request.trip_id, plan, request.start_date, request.end_date
    )
    logger.info(f"Generated plan for trip {request.trip_id}")

    return GeneratePlanResponse(success=True, trip_id=request.trip_id, plan=plan, saved=saved)
