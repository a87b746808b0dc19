from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from callback_tracker.db.session import get_session
from callback_tracker.models.ticket import Ticket
from callback_tracker.services.dashboard import build_dashboard

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
def stats(session: Session = Depends(get_session)):
    tickets = session.exec(select(Ticket)).all()
    return {"data": build_dashboard(tickets)}
