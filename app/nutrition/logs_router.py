"""Weight log endpoints — logging a weight can trigger a goals recalculation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import current_user_id
from app.db import get_session
from app.nutrition import connector, service
from app.nutrition.models import WeightLog, WeightLogCreate, WeightLogUpdate
from app.nutrition.service import GoalsError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/weight", response_model=list[WeightLog])
async def list_weight_logs(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[dict]:
    return list(await connector.fetch_weight_logs(session, user_id))


@router.get("/weight/{log_id}", response_model=WeightLog)
async def get_weight_log(
    log_id: int,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    log = await connector.fetch_weight_log(session, user_id, log_id)
    if log is None:
        raise GoalsError(404, "Weight log not found")
    return log


@router.post("/weight", status_code=201)
async def create_weight_log(
    entry: WeightLogCreate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    """Store the entry; if it is the newest, move current_weight and
    recalculate goals when the stored snapshot is stale.

    Backdated entries are history only and leave the profile alone.
    """
    latest = await connector.fetch_latest_weight_log_date(session, user_id)
    is_newest = latest is None or entry.date >= latest
    log = await connector.insert_weight_log(session, user_id, entry.weight, entry.date, entry.notes)

    recalculated = False
    if is_newest:
        profile = await connector.update_profile(session, user_id, {"current_weight": entry.weight})
        if profile is None:
            logger.warning("Weight logged for user=%s with no profile row", user_id)
        elif not any(service.missing_profile_fields(profile).values()):
            goals = await connector.fetch_goals(session, user_id)
            if service.is_stale(goals, entry.weight):
                auto = bool(goals.get("auto_recalculate", True)) if goals else True
                await service.recalculate(session, user_id, profile, auto_recalculate=auto)
                recalculated = True
    else:
        logger.info("Backdated weight log user=%s date=%s (latest %s)", user_id, entry.date, latest)

    await session.commit()
    return {
        "log": WeightLog.model_validate(log).model_dump(mode="json") if log else None,
        "current_weight_updated": is_newest,
        "goals_recalculated": recalculated,
    }


@router.put("/weight/{log_id}", response_model=WeightLog)
async def update_weight_log(
    log_id: int,
    patch: WeightLogUpdate,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    """Edit a stored entry. The profile's current_weight is not touched."""
    log = await connector.update_weight_log(session, user_id, log_id, patch.model_dump(exclude_none=True))
    if log is None:
        raise GoalsError(404, "Weight log not found")
    await session.commit()
    return log


@router.delete("/weight/{log_id}")
async def delete_weight_log(
    log_id: int,
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> dict:
    deleted = await connector.delete_weight_log(session, user_id, log_id)
    if not deleted:
        raise GoalsError(404, "Weight log not found")
    await session.commit()
    return {"success": True}
