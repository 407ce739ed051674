"""Profile and nutrition goal contracts — Pydantic v2 models."""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class ActivityLevel(str, Enum):
    sedentary = "sedentary"
    lightly_active = "lightly_active"
    moderately_active = "moderately_active"
    very_active = "very_active"
    extremely_active = "extremely_active"


class FitnessGoal(str, Enum):
    lose_weight = "lose_weight"
    maintain_weight = "maintain_weight"
    build_muscle = "build_muscle"
    recomposition = "recomposition"


class GoalIntensity(str, Enum):
    slow = "slow"
    moderate = "moderate"
    aggressive = "aggressive"


class UserProfile(BaseModel):
    """Calculator input — a snapshot of the profile store row."""

    model_config = ConfigDict(frozen=True)

    current_weight: float = Field(gt=0)  # kg
    height: float = Field(gt=0)  # cm
    date_of_birth: date
    gender: Gender
    activity_level: ActivityLevel
    fitness_goal: FitnessGoal
    goal_weight: float | None = Field(default=None, gt=0)


class NutritionGoals(BaseModel):
    """Calculator output. Always produced whole, never patched."""

    model_config = ConfigDict(frozen=True)

    bmr: int
    tdee: int
    daily_calories: int
    daily_protein: int
    daily_carbs: int
    daily_fat: int
    goal_intensity: GoalIntensity


class GoalsRecord(BaseModel):
    """Row shape of the user_goals table."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    target_weight: float | None = None
    daily_calorie_goal: int
    daily_protein_goal: int
    daily_carbs_target: int
    daily_fat_target: int
    calculated_bmr: int
    calculated_tdee: int
    goal_intensity: GoalIntensity
    last_calculated_weight: float | None = None
    last_recalculated_at: datetime | None = None
    auto_recalculate: bool = True
    updated_at: datetime | None = None

    @classmethod
    def from_goals(
        cls,
        user_id: str,
        goals: NutritionGoals,
        *,
        current_weight: float,
        target_weight: float | None,
        calculated_at: datetime | None = None,
        auto_recalculate: bool = True,
    ) -> GoalsRecord:
        ts = calculated_at or datetime.now(timezone.utc)
        return cls(
            user_id=user_id,
            target_weight=target_weight,
            daily_calorie_goal=goals.daily_calories,
            daily_protein_goal=goals.daily_protein,
            daily_carbs_target=goals.daily_carbs,
            daily_fat_target=goals.daily_fat,
            calculated_bmr=goals.bmr,
            calculated_tdee=goals.tdee,
            goal_intensity=goals.goal_intensity,
            last_calculated_weight=current_weight,
            last_recalculated_at=ts,
            auto_recalculate=auto_recalculate,
            updated_at=ts,
        )


def _check_dob_in_past(v: date | None) -> date | None:
    if v is not None and v >= datetime.now(timezone.utc).date():
        raise ValueError("date_of_birth must be in the past")
    return v


class ProfileCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    height: float = Field(gt=0)
    current_weight: float = Field(gt=0)
    starting_weight: float | None = Field(default=None, gt=0)
    goal_weight: float | None = Field(default=None, gt=0)
    date_of_birth: date
    gender: Gender
    activity_level: ActivityLevel
    fitness_goal: FitnessGoal

    @field_validator("date_of_birth")
    @classmethod
    def _dob_in_past(cls, v: date | None) -> date | None:
        return _check_dob_in_past(v)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    # all optional; only provided fields are updated
    height: float | None = Field(default=None, gt=0)
    current_weight: float | None = Field(default=None, gt=0)
    goal_weight: float | None = Field(default=None, gt=0)
    date_of_birth: date | None = None
    gender: Gender | None = None
    activity_level: ActivityLevel | None = None
    fitness_goal: FitnessGoal | None = None

    @field_validator("date_of_birth")
    @classmethod
    def _dob_in_past(cls, v: date | None) -> date | None:
        return _check_dob_in_past(v)


class GoalSettingsUpdate(BaseModel):
    auto_recalculate: bool


class WeightLogCreate(BaseModel):
    weight: float = Field(gt=0)
    date: dt.date
    notes: str | None = None


class WeightLogUpdate(BaseModel):
    weight: float | None = Field(default=None, gt=0)
    date: dt.date | None = None
    notes: str | None = None


class WeightLog(BaseModel):
    id: int
    user_id: str
    weight: float
    date: dt.date
    notes: str | None = None
    created_at: datetime | None = None


class RecalculationCheck(BaseModel):
    should_recalculate: bool
    current_weight: float | None = None
    last_calculated_weight: float | None = None
    last_recalculated_at: datetime | None = None
    auto_recalculate: bool = True
