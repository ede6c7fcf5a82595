from openai import AsyncOpenAI, OpenAIError
from core.config import settings
from core.errors import PlanGenerationError, ValidationFailedError
from core.logging import logger
from schemas.plan import GeneratePlanRequest
import datetime
import json
import math


REQUIRED_FIELDS = ("trip_id", "title", "start_date", "end_date")

PLAN_FORMAT = """{
  "cityStops": [
    {"tempId": "c1", "name": "City Name", "lat": 40.7128, "lng": -74.0060,
     "arrival": "YYYY-MM-DD", "departure": "YYYY-MM-DD", "order": 1,
     "notes": "Why visit this city, what makes it special"}
  ],
  "transportation": {
    "routes": [{"from": "City A", "to": "City B", "options": [
      {"mode": "flight/train/bus/ferry", "duration": "2 hours", "cost": 50,
       "currency": "INR", "tips": "Best time to book, booking sites"}]}],
    "localTransport": {"city": "City Name", "modes": ["metro", "bus", "walking"],
                       "recommendations": "Best way to get around", "cost": "Daily pass cost"}
  },
  "accommodation": [
    {"city": "City Name",
     "budget": {"type": "hostel", "name": "Example Hostel", "cost": 20, "currency": "INR"},
     "midrange": {"type": "hotel", "name": "Example Hotel", "cost": 60, "currency": "INR"},
     "unique": {"type": "homestay", "name": "Local Experience", "cost": 35, "currency": "INR"}}
  ],
  "food": [
    {"city": "City Name", "mustTry": ["Dish 1"], "budgetRestaurants": [
      {"name": "Restaurant", "type": "Street food", "specialty": "What to order",
       "cost": 5, "location": "Area"}], "markets": ["Market"], "tips": "Food tips"}
  ],
  "pois": [
    {"tempId": "p1", "cityTempId": "c1", "name": "Attraction", "lat": 40.7128,
     "lng": -74.0060, "city": "City Name", "style": "famous/offbeat",
     "category": "museum/beach/hiking/cultural", "description": "Why visit",
     "cost": 10, "currency": "INR", "duration": "2-3 hours",
     "bestTime": "Morning/Afternoon", "tips": "Booking info"}
  ],
  "itinerary": [
    {"day": "Day 1", "date": "YYYY-MM-DD", "city": "City Name", "items": [
      {"title": "Activity Name", "poiTempId": "p1",
       "kind": "SIGHT/FOOD/ACTIVITY/MOVE/STAY/REST", "startTime": "09:00",
       "endTime": "11:00", "cost": 10, "notes": "Tips"}]}
  ],
  "budgetBreakdown": {"accommodation": 300, "food": 200, "transportation": 400,
                      "activities": 150, "miscellaneous": 50, "total": 1100,
                      "currency": "INR"},
  "tips": ["General travel tip"],
  "guide": {"bestTime": "", "customs": "", "language": "", "safety": "",
            "packing": "", "visa": "", "currency": ""}
}"""


def missing_fields(request: GeneratePlanRequest) -> list:
    return [name for name in REQUIRED_FIELDS if not getattr(request, name)]


def plan_days(start_date: str, end_date: str) -> int:
    """Trip length in days, counting both the first and the last day."""
    try:
        start = datetime.date.fromisoformat(start_date[:10])
        end = datetime.date.fromisoformat(end_date[:10])
    except ValueError as e:
        raise ValidationFailedError("start_date and end_date must be YYYY-MM-DD dates") from e
    return math.ceil((end - start).total_seconds() / 86400) + 1


def build_plan_prompt(request: GeneratePlanRequest) -> str:
    days = plan_days(request.start_date, request.end_date)
    if request.budget:
        budget = f"{request.budget:g} {request.currency or settings.DEFAULT_CURRENCY}"
    else:
        budget = "Flexible budget"

    return (
        "You are an expert travel planner specializing in budget-friendly, off-beat, "
        "and authentic travel experiences. Create a comprehensive, detailed travel plan "
        "for the following trip:\n\n"
        "TRIP DETAILS:\n"
        f"- Title: {request.title}\n"
        f"- Start Date: {request.start_date}\n"
        f"- End Date: {request.end_date}\n"
        f"- Duration: {days} days\n"
        f"- Budget: {budget}\n"
        f"- Number of Travelers: {request.travelers or 1}\n"
        f"- Description: {request.description or 'General travel experience'}\n\n"
        "OUTPUT FORMAT - Return ONLY valid JSON (no markdown, no code blocks) with this "
        "exact structure:\n"
        f"{PLAN_FORMAT}\n\n"
        "IMPORTANT:\n"
        "- Include a mix of famous AND off-beat locations (at least 30% off-beat/hidden gems)\n"
        "- Provide realistic coordinates (lat/lng) for all locations\n"
        "- Ensure all dates are within the trip duration\n"
        "- Make activities budget-friendly but also include premium options\n"
        "- Be specific with locations, not generic\n"
        "- Include practical tips and insider knowledge\n"
        "- Consider the number of travelers in recommendations"
    )


def extract_plan_json(content: str) -> dict:
    """Parse the outermost JSON object out of the model's reply."""
    start = content.find("{")
    end = content.rfind("}")
    try:
        if start == -1 or end == -1 or end < start:
            raise ValueError("No valid JSON object found in AI response.")
        plan = json.loads(content[start : end + 1])
        if not isinstance(plan, dict):
            raise ValueError("AI response is not a JSON object.")
    except ValueError as e:
        logger.error(f"Error parsing AI response: {e}")
        raise PlanGenerationError(
            "Failed to parse AI response",
            details={"details": str(e), "rawResponse": content[:500]},
        ) from e
    return plan


async def generate_travel_plan(request: GeneratePlanRequest, client=None) -> dict:
    """Ask the model for a complete plan for one trip and return it as a dict."""
    if not settings.GEMINI_API_KEY:
        raise PlanGenerationError(
            "Gemini API key not configured. Please set GEMINI_API_KEY in the environment."
        )

    logger.info(f"Generating travel plan for trip {request.trip_id}")

    if client is None:
        client = AsyncOpenAI(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_BASE_URL,
        )

    messages = [{"role": "user", "content": build_plan_prompt(request)}]

    try:
        response = await client.chat.completions.create(
            model=settings.GEMINI_MODEL,
            messages=messages,
            temperature=0.8,
            top_p=0.95,
            max_tokens=8192,
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        logger.error(f"Gemini API error: {str(e)}")
        raise PlanGenerationError(
            "Failed to generate travel plan", details={"details": str(e)}
        ) from e

    content = (response.choices[0].message.content or "").strip()
    return extract_plan_json(content)
