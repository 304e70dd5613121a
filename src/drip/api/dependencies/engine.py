"""Automation engine dependency."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.drip.engine import AutomationEngine


def get_automation_engine(request: Request) -> AutomationEngine:
    """Engine instance owned by the application lifespan."""
    engine: AutomationEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Automation engine is not running",
        )
    return engine


Engine = Annotated[AutomationEngine, Depends(get_automation_engine)]
