import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.nutrition.logs_router import router as logs_router
from app.nutrition.router import router as goals_router
from app.nutrition.service import GoalsError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CoachGoals", version="0.1.0")
app.include_router(goals_router)
app.include_router(logs_router)


@app.exception_handler(GoalsError)
async def goals_error_handler(request: Request, exc: GoalsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "goals": {
            "goals": "/goals",
            "calculate": "/goals/calculate",
            "recalculation": "/goals/recalculation",
            "settings": "/goals/settings",
            "profile": "/profile",
            "weight_logs": "/logs/weight",
            "weight_log": "/logs/weight/{id}",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
