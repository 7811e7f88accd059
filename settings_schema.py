from pydantic import BaseModel, ValidationError, Field

class SettingsSchema(BaseModel):
    routine_name: str = "My Routine"
    session_lookup_limit: int = Field(30, ge=1)
    sessions_page_size: int = Field(50, ge=1)
    finish_min_percent: int = Field(30, ge=0, le=100)
    shuffle_seed: str = ""
    app_version: str = "1.0.0"

def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**{k: str(v) if k == "shuffle_seed" else v for k, v in data.items()})
    except ValidationError as e:
        raise ValueError(str(e))
