"""Prompts for itinerary generation."""

SYSTEM_PROMPT = (
    "You are a professional travel planner. Respond ONLY with valid JSON arrays. "
    "No markdown, no explanations, just raw JSON."
)


def build_itinerary_prompt(destination: str, duration_days: int, min_description_length: int = 20) -> str:
    """Build the user prompt requesting a `duration_days`-day JSON itinerary."""
    return f"""You are a professional travel planner. Create a detailed {duration_days}-day itinerary for {destination}.

CRITICAL: Return ONLY a valid JSON array. No markdown formatting, no explanations, no extra text.

Each day must follow this EXACT structure:
{{
  "day": 1,
  "theme": "Brief descriptive theme for the day",
  "activities": [
    {{
      "time": "Morning",
      "description": "Detailed activity description with practical tips (minimum {min_description_length} characters)",
      "location": "Specific location name"
    }}
  ]
}}

Requirements:
- The array must contain exactly {duration_days} day objects
- Include 3-4 activities per day (Morning, Afternoon, Evening, optionally Late Evening)
- Each description must be at least {min_description_length} characters long
- Include specific, real location names
- Consider travel time and logical activity flow
- Mix cultural, historical, and leisure activities
- Ensure "day" field matches the day number (1, 2, 3, etc.)

Return ONLY the JSON array starting with [ and ending with ]. No other text.

Destination: {destination}
Duration: {duration_days} days"""
