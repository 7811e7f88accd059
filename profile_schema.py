from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from errors import ProfileValidationError

OBJECTIVES = ("gain_muscle", "lose_fat", "maintain")
EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")
SESSION_DURATIONS = ("30min", "1h", "2h")
DAYS_PER_WEEK = (3, 4, 6)


class UserProfileSchema(BaseModel):
    """Profile fields used as read-only input to routine generation."""

    height: Optional[float] = Field(None, gt=0)
    weight: Optional[float] = Field(None, gt=0)
    age: Optional[int] = Field(None, ge=0)
    sex: Optional[Literal["male", "female", "other"]] = None
    objective: Literal["gain_muscle", "lose_fat", "maintain"]
    experience: Literal["beginner", "intermediate", "advanced"] = "beginner"
    session_duration: Literal["30min", "1h", "2h"]
    days_per_week: Literal[3, 4, 6]


def validate_profile(data: dict | None) -> UserProfileSchema:
    """Return a validated profile or raise :class:`ProfileValidationError`."""
    if not data:
        raise ProfileValidationError("profile not found")
    clean = {k: v for k, v in data.items() if v is not None}
    if "days_per_week" in clean:
        try:
            clean["days_per_week"] = int(clean["days_per_week"])
        except (TypeError, ValueError):
            raise ProfileValidationError("days_per_week must be 3, 4 or 6")
    try:
        return UserProfileSchema(**clean)
    except ValidationError as e:
        raise ProfileValidationError(str(e))
