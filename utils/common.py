import json
import re
import time
from functools import wraps
from typing import Any

from logger import get_logger

logger = get_logger(__name__)

CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def timing_decorator(func):
    """Decorator to measure function execution time."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        end_time = time.time()
        logger.debug(f"[TIME] {func.__name__} took {end_time - start_time:.4f} seconds")
        return result

    return wrapper


def strip_code_fences(string: str) -> str:
    string = string.strip()
    match = CODE_FENCE.match(string)
    return match.group(1) if match else string


def safe_str_to_json(string: Any) -> Any:
    """Parses model output into JSON, returning the input unchanged when it
    is not a string or cannot be parsed."""
    if not isinstance(string, str):
        return string
    try:
        return json.loads(strip_code_fences(string))
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to convert string to JSON: {e}")
        return string


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer rounding of numerator / denominator with .5 rounding up."""
    return (2 * numerator + denominator) // (2 * denominator)
