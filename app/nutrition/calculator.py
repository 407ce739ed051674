"""Pure nutrition goal calculator — math only, never raises.

- BMR: Mifflin–St Jeor (``other`` averages the male and female results)
- TDEE = BMR × activity multiplier
- Calorie goal = TDEE + adjustment[(fitness_goal, intensity)], clamped as
  ``max(1200, min(goal, tdee + 500), tdee - 1000)``
- Protein: g/kg by fitness goal; fat: 25% of calories; carbs: the remainder

All rounding is half-up (``floor(x + 0.5)``), so ``1648.75 -> 1649`` and
``-74.5 -> -74``. Carbs are not floored at zero.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone

from app.nutrition.models import (
    ActivityLevel,
    FitnessGoal,
    Gender,
    GoalIntensity,
    NutritionGoals,
    UserProfile,
)

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    ActivityLevel.sedentary: 1.2,  # little or no exercise
    ActivityLevel.lightly_active: 1.375,  # 1-3 days/week
    ActivityLevel.moderately_active: 1.55,  # 3-5 days/week
    ActivityLevel.very_active: 1.725,  # 6-7 days/week
    ActivityLevel.extremely_active: 1.9,  # physical job or twice-daily training
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55

CALORIE_ADJUSTMENTS: dict[str, dict[str, int]] = {
    FitnessGoal.lose_weight: {
        GoalIntensity.slow: -250,
        GoalIntensity.moderate: -500,
        GoalIntensity.aggressive: -750,
    },
    FitnessGoal.maintain_weight: {
        GoalIntensity.slow: 0,
        GoalIntensity.moderate: 0,
        GoalIntensity.aggressive: 0,
    },
    FitnessGoal.build_muscle: {
        GoalIntensity.slow: 200,
        GoalIntensity.moderate: 300,
        GoalIntensity.aggressive: 500,
    },
    FitnessGoal.recomposition: {
        GoalIntensity.slow: -200,
        GoalIntensity.moderate: -200,
        GoalIntensity.aggressive: -300,
    },
}
DEFAULT_CALORIE_ADJUSTMENT = 0

PROTEIN_PER_KG: dict[str, float] = {
    FitnessGoal.lose_weight: 2.0,
    FitnessGoal.maintain_weight: 1.6,
    FitnessGoal.build_muscle: 2.2,
    FitnessGoal.recomposition: 2.0,
}
DEFAULT_PROTEIN_PER_KG = 1.6

MIN_DAILY_CALORIES = 1200
MAX_SURPLUS = 500
MAX_DEFICIT = 1000
FAT_CALORIE_SHARE = 0.25
KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9

RECALC_WEIGHT_CHANGE_PCT = 5.0
RECALC_MAX_AGE_DAYS = 90


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_age(date_of_birth: date | str, today: date | None = None) -> int:
    """Whole years elapsed since ``date_of_birth`` as of ``today`` (UTC)."""
    if isinstance(date_of_birth, str):
        date_of_birth = date.fromisoformat(date_of_birth[:10])
    if today is None:
        today = datetime.now(timezone.utc).date()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def calculate_bmr(weight_kg: float, height_cm: float, age_years: int, gender: str) -> int:
    """Mifflin–St Jeor. No plausibility clamp: extreme input can go negative."""
    base = 10.0 * weight_kg + 6.25 * height_cm - 5.0 * age_years
    if gender == Gender.male:
        return round_half_up(base + 5)
    if gender == Gender.female:
        return round_half_up(base - 161)
    # Modeling choice for "other": mean of the male and female equations
    return round_half_up(((base + 5) + (base - 161)) / 2)


def activity_multiplier(activity_level: str | None) -> float:
    return ACTIVITY_MULTIPLIERS.get(activity_level, DEFAULT_ACTIVITY_MULTIPLIER)


def calculate_tdee(bmr: int, activity_level: str | None) -> int:
    return round_half_up(bmr * activity_multiplier(activity_level))


def determine_goal_intensity(
    current_weight: float,
    goal_weight: float | None,
    fitness_goal: str,
) -> GoalIntensity:
    """Pick slow/moderate/aggressive from the weight gap.

    Only ``lose_weight`` is tiered (>20 kg aggressive, >10 kg moderate, else
    slow). Muscle building stays moderate to limit fat gain; everything else,
    including a missing goal weight, is moderate.
    """
    if not goal_weight or fitness_goal == FitnessGoal.maintain_weight:
        return GoalIntensity.moderate

    if fitness_goal == FitnessGoal.lose_weight:
        gap = abs(current_weight - goal_weight)
        if gap > 20:
            return GoalIntensity.aggressive
        if gap > 10:
            return GoalIntensity.moderate
        return GoalIntensity.slow

    if fitness_goal == FitnessGoal.build_muscle:
        return GoalIntensity.moderate

    return GoalIntensity.moderate


def calculate_calorie_goal(
    tdee: int,
    fitness_goal: str,
    intensity: str = GoalIntensity.moderate,
) -> int:
    """TDEE plus the goal adjustment, clamped to the safety bounds.

    The clamp is a three-way max: the result is never below 1200 nor below
    ``tdee - 1000``, even when that lands above ``tdee + adjustment``.
    """
    by_intensity = CALORIE_ADJUSTMENTS.get(fitness_goal, {})
    adjustment = by_intensity.get(intensity, DEFAULT_CALORIE_ADJUSTMENT)
    goal = tdee + adjustment
    return max(MIN_DAILY_CALORIES, min(goal, tdee + MAX_SURPLUS), tdee - MAX_DEFICIT)


def calculate_protein_goal(weight_kg: float, fitness_goal: str) -> int:
    return round_half_up(weight_kg * PROTEIN_PER_KG.get(fitness_goal, DEFAULT_PROTEIN_PER_KG))


def calculate_fat_goal(daily_calories: int) -> int:
    return round_half_up(daily_calories * FAT_CALORIE_SHARE / KCAL_PER_G_FAT)


def calculate_carbs_goal(daily_calories: int, protein_g: int, fat_g: int) -> int:
    """Carbs absorb what protein and fat leave. May be negative."""
    remaining = daily_calories - protein_g * KCAL_PER_G_PROTEIN - fat_g * KCAL_PER_G_FAT
    return round_half_up(remaining / KCAL_PER_G_CARBS)


def calculate_all_goals(profile: UserProfile, today: date | None = None) -> NutritionGoals:
    age = calculate_age(profile.date_of_birth, today)
    bmr = calculate_bmr(profile.current_weight, profile.height, age, profile.gender)
    tdee = calculate_tdee(bmr, profile.activity_level)
    intensity = determine_goal_intensity(
        profile.current_weight, profile.goal_weight, profile.fitness_goal
    )
    daily_calories = calculate_calorie_goal(tdee, profile.fitness_goal, intensity)
    daily_protein = calculate_protein_goal(profile.current_weight, profile.fitness_goal)
    daily_fat = calculate_fat_goal(daily_calories)
    daily_carbs = calculate_carbs_goal(daily_calories, daily_protein, daily_fat)

    return NutritionGoals(
        bmr=bmr,
        tdee=tdee,
        daily_calories=daily_calories,
        daily_protein=daily_protein,
        daily_carbs=daily_carbs,
        daily_fat=daily_fat,
        goal_intensity=intensity,
    )


def _parse_timestamp(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def should_recalculate_goals(
    current_weight: float,
    last_calculated_weight: float,
    last_recalculated_at: datetime | str | None,
    auto_recalculate: bool = True,
    now: datetime | None = None,
) -> bool:
    """Staleness check for a stored goals snapshot.

    Due when never calculated, when weight moved by 5% or more, or when more
    than 90 whole days have passed. ``last_calculated_weight`` must be > 0.
    """
    if not auto_recalculate:
        return False
    if not last_recalculated_at:
        return True

    change_pct = abs((current_weight - last_calculated_weight) / last_calculated_weight) * 100
    if change_pct >= RECALC_WEIGHT_CHANGE_PCT:
        return True

    if now is None:
        now = datetime.now(timezone.utc)
    elapsed = _parse_timestamp(now) - _parse_timestamp(last_recalculated_at)
    days_since = math.floor(elapsed.total_seconds() / 86400)
    return days_since > RECALC_MAX_AGE_DAYS
