from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.cors import add_cors
from core.errors import TripPlannerError
from core.logging import logger
from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.trips import router as trips_router
from app.api.v1.itinerary import router as itinerary_router
from app.api.v1.expenses import router as expenses_router
from app.api.v1.friends import router as friends_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.plan import router as plan_router

app = FastAPI(title="Trip Planner API")

# Add CORS middleware
add_cors(app)


@app.exception_handler(TripPlannerError)
async def trip_planner_error_handler(request: Request, exc: TripPlannerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, **exc.details},
    )


# Include API routes
for router in (
    auth_router,
    users_router,
    trips_router,
    itinerary_router,
    expenses_router,
    friends_router,
    notifications_router,
    plan_router,
):
    app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Trip Planner API"}
