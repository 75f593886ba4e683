# farmwise/core/models.py

import datetime
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AnalysisKind = Literal["soil", "crop"]
HistoryType = Literal["soil", "crop", "planner"]
Difficulty = Literal["Easy", "Moderate", "Challenging"]
ReminderCategory = Literal["Planting", "Watering", "Fertilizing", "Harvesting"]


class Nutrient(BaseModel):
    """One labelled percentage bar of an analysis."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: int = Field(ge=0, le=100)


class AnalysisResult(BaseModel):
    """Structured outcome of a soil or crop image analysis."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    health_score: int = Field(alias="healthScore", ge=0, le=100, description="Overall health index, 0-100.")
    quality: str = Field(description="Quality grade or health status name.")
    nutrients: List[Nutrient] = Field(min_length=1)
    recommendations: List[str] = Field(min_length=1)
    description: str


class CropRecommendation(BaseModel):
    """A crop suggested by the season planner."""
    model_config = ConfigDict(frozen=True)

    name: str
    suitability: str
    duration: str = Field(description='Typical duration, e.g. "90-120 days".')
    reason: str
    difficulty: Difficulty


class ChatTurn(BaseModel):
    """One message of the advisor transcript."""
    role: Literal["user", "model"]
    text: str = ""
    # set on a model turn that ended with the failure placeholder
    failed: bool = False


class HistoryItem(BaseModel):
    """An entry of the activity log."""
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    type: HistoryType
    data: Union[AnalysisResult, List[CropRecommendation]]
    image: Optional[str] = None
    summary: str

    @model_validator(mode="after")
    def data_matches_type(self):
        if self.type == "planner":
            if not isinstance(self.data, list) or not self.data:
                raise ValueError("planner entries must hold a non-empty list of crop recommendations")
        elif not isinstance(self.data, AnalysisResult):
            raise ValueError(f"{self.type} entries must hold an analysis result")
        return self


class Reminder(BaseModel):
    """A task on the reminder list."""
    id: str
    title: str
    date: str
    completed: bool = False
    category: ReminderCategory

    @field_validator("date")
    @classmethod
    def iso_date(cls, value: str) -> str:
        datetime.date.fromisoformat(value)
        return value


class Preferences(BaseModel):
    """UI preference flags."""
    model_config = ConfigDict(populate_by_name=True)

    dark_mode: bool = Field(default=False, alias="darkMode")
    authenticated: bool = False
