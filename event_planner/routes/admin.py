"""Administrative routes."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from event_planner.core.database import get_session
from event_planner.models.schemas import SweepReport
from event_planner.planning.actors import Actor
from event_planner.planning.sweeper import sweep_completions
from event_planner.routes.deps import require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/sweep", response_model=SweepReport)
def trigger_sweep(
    session: Session = Depends(get_session),
    actor: Actor = Depends(require_admin),
):
    """
    Run the completion sweep now.

    Marks every active event that started more than the grace period ago as
    completed. Safe to call repeatedly.
    """
    result = sweep_completions(session)
    return SweepReport(completed=result.completed, checked=result.checked, failed=result.failed)
