"""Goals & profile HTTP router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import current_user_id
from app.db import get_session
from app.nutrition import connector, service
from app.nutrition.models import (
    GoalSettingsUpdate,
    GoalsRecord,
    ProfileCreate,
    ProfileUpdate,
    RecalculationCheck,
)
from app.nutrition.service import GoalsError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["goals"])


# ---------------------------------------------------------------------------
# /goals
# ---------------------------------------------------------------------------


@router.get("/goals", response_model=GoalsRecord)
async def get_goals(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    goals = await connector.fetch_goals(session, user_id)
    if goals is None:
        raise GoalsError(404, "Goals not set", "NO_GOALS")
    return goals


@router.post("/goals/calculate")
async def calculate_goals(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    profile = await connector.fetch_profile(session, user_id)
    if profile is None:
        raise GoalsError(404, "Profile not found")

    saved, calculated = await service.recalculate(session, user_id, profile)
    await session.commit()

    return {
        "success": True,
        "goals": GoalsRecord.model_validate(saved).model_dump(mode="json") if saved else None,
        "calculated": calculated.model_dump(mode="json"),
    }


@router.get("/goals/recalculation", response_model=RecalculationCheck)
async def recalculation_check(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> RecalculationCheck:
    """Read-only: would a new calculation pass be warranted right now?"""
    profile = await connector.fetch_profile(session, user_id)
    if profile is None:
        raise GoalsError(404, "Profile not found")

    goals = await connector.fetch_goals(session, user_id)
    current_weight = service.effective_weight(profile)
    return RecalculationCheck(
        should_recalculate=service.is_stale(goals, current_weight),
        current_weight=current_weight,
        last_calculated_weight=goals.get("last_calculated_weight") if goals else None,
        last_recalculated_at=goals.get("last_recalculated_at") if goals else None,
        auto_recalculate=bool(goals.get("auto_recalculate", True)) if goals else True,
    )


@router.patch("/goals/settings", response_model=GoalsRecord)
async def update_goal_settings(
    patch: GoalSettingsUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    goals = await connector.set_auto_recalculate(session, user_id, patch.auto_recalculate)
    if goals is None:
        raise GoalsError(404, "Goals not set", "NO_GOALS")
    await session.commit()
    return goals


# ---------------------------------------------------------------------------
# /profile
# ---------------------------------------------------------------------------


@router.get("/profile")
async def get_profile(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    profile = await connector.fetch_profile(session, user_id)
    if profile is None:
        raise GoalsError(404, "Profile not found")
    return profile


@router.post("/profile", status_code=201)
async def create_profile(
    body: ProfileCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    """Create (or overwrite) the profile, log the starting weight, calculate goals."""
    fields = body.model_dump()
    if fields["starting_weight"] is None:
        fields["starting_weight"] = body.current_weight

    profile = await connector.upsert_profile(session, user_id, fields)
    if profile is None:
        raise GoalsError(500, "Failed to create profile")

    await connector.insert_weight_log(
        session, user_id, body.current_weight, service.local_today(), "Starting weight"
    )
    saved, calculated = await service.recalculate(session, user_id, profile)
    await session.commit()
    logger.info("Created profile user=%s goal=%s", user_id, body.fitness_goal)

    return {
        "success": True,
        "profile": profile,
        "goals": GoalsRecord.model_validate(saved).model_dump(mode="json") if saved else None,
        "calculated": calculated.model_dump(mode="json"),
    }


@router.put("/profile")
async def update_profile(
    patch: ProfileUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    current = await connector.fetch_profile(session, user_id)
    if current is None:
        raise GoalsError(404, "Profile not found")

    changes = patch.model_dump(exclude_none=True)
    if not changes:
        return {"profile": current, "goals_recalculated": False}

    will_recalculate = service.impact_changed(current, changes)
    updated = await connector.update_profile(session, user_id, changes)
    if updated is None:
        raise GoalsError(404, "Profile not found")

    recalculated = False
    if will_recalculate and not any(service.missing_profile_fields(updated).values()):
        goals = await connector.fetch_goals(session, user_id)
        if goals is None or goals.get("auto_recalculate", True):
            await service.recalculate(session, user_id, updated)
            recalculated = True

    await session.commit()
    return {"profile": updated, "goals_recalculated": recalculated}
