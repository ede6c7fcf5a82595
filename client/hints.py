from typing import Optional


def describe_generation_error(message: str, status_code: Optional[int] = None) -> str:
    """User-facing hint for a failed plan generation, matched on the error text."""
    message = message or ""
    if status_code == 404 or "404" in message:
        return "The trip plan generator is not deployed yet. Please try again later."
    if status_code == 401 or "401" in message or "token" in message.lower():
        return "Your session has expired. Please sign in again and retry."
    if "Gemini API key" in message:
        return "The AI service is not configured. Please contact the administrator."
    return f"Failed to generate trip plan: {message or 'Unknown error'}"
