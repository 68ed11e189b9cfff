"""
Request construction for food photo analysis.

The prompt describes the exact JSON schema the model must return; the
response is additionally forced to a JSON object via response_format.
Pure construction: inputs are not validated here.
"""

from typing import Any, Dict, List


DEFAULT_MODEL = "gpt-4o"
MAX_TOKENS = 1000
IMAGE_MIME_TYPE = "image/jpeg"

FOOD_ANALYSIS_PROMPT = """Analyze this food image and return a JSON object with the following structure:
{
    "ingredients": [
        {
            "name": "string",
            "quantity": number,
            "unit": "string (g, ml, oz, etc.)",
            "calories": number
        }
    ],
    "totalCalories": number,
    "mealType": "string (breakfast/lunch/dinner/snack)",
    "description": "string (brief description of the meal)"
}

Be accurate with calorie estimates based on the visible ingredients and quantities."""

# Shape of the nested content string described by FOOD_ANALYSIS_PROMPT
FOOD_ANALYSIS_OUTPUT_SCHEMA: Dict[str, Any] = {
    "ingredients": [{"name": "", "quantity": 0, "unit": "", "calories": 0}],
    "totalCalories": 0,
    "mealType": "",
    "description": "",
}


def build_image_data_url(image_base64: str) -> str:
    """
    Wrap base64 JPEG data into a data URI.

    Example:
        >>> build_image_data_url("AAAA")
        'data:image/jpeg;base64,AAAA'
    """
    return f"data:{IMAGE_MIME_TYPE};base64,{image_base64}"


def build_analysis_messages(image_base64: str) -> List[Dict[str, Any]]:
    """
    Build the chat messages for a food photo.

    Single user message: instruction text first, then the image.

    Args:
        image_base64: Base64 JPEG payload (no data URI prefix)

    Returns:
        List with one user message in chat-completions format
    """
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": FOOD_ANALYSIS_PROMPT},
                {
                    "type": "image_url",
                    "image_url": {"url": build_image_data_url(image_base64)},
                },
            ],
        }
    ]


def build_analysis_request(
    image_base64: str,
    model: str = DEFAULT_MODEL,
    max_tokens: int = MAX_TOKENS,
) -> Dict[str, Any]:
    """
    Build the complete chat-completions request body.

    Args:
        image_base64: Base64 JPEG payload
        model: Vision model identifier
        max_tokens: Completion token ceiling

    Returns:
        JSON-serializable request body

    Example:
        >>> body = build_analysis_request("AAAA", model="gpt-4o")
        >>> body["response_format"]
        {'type': 'json_object'}
        >>> body["max_tokens"]
        1000
    """
    return {
        "model": model,
        "messages": build_analysis_messages(image_base64),
        "response_format": {"type": "json_object"},
        "max_tokens": max_tokens,
    }
