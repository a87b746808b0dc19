import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from callback_tracker.api.deps import ticket_filter
from callback_tracker.db.session import get_session
from callback_tracker.models.ticket import Note, Ticket
from callback_tracker.schemas.ticket import NoteCreate, TicketCreate, TicketFilter, TicketUpdate
from callback_tracker.services.mapping import (
    build_ticket_filter,
    ticket_values_to_storage,
    to_api_note,
    to_api_ticket,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _get_ticket_or_404(session: Session, ticket_id: uuid.UUID) -> Ticket:
    ticket = session.get(Ticket, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.get("")
def list_tickets(
    filters: TicketFilter = Depends(ticket_filter),
    session: Session = Depends(get_session),
):
    q = (
        select(Ticket)
        .where(*build_ticket_filter(filters))
        .options(selectinload(Ticket.notes))
        .order_by(col(Ticket.created_on).desc())
    )
    tickets = session.exec(q).all()
    return {"data": [to_api_ticket(t) for t in tickets]}


@router.get("/{ticket_id}")
def get_ticket(ticket_id: uuid.UUID, session: Session = Depends(get_session)):
    ticket = _get_ticket_or_404(session, ticket_id)
    return {"data": to_api_ticket(ticket)}


@router.post("", status_code=201)
def create_ticket(body: TicketCreate, session: Session = Depends(get_session)):
    ticket = Ticket(**ticket_values_to_storage(body.model_dump()))
    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    return {"data": to_api_ticket(ticket)}


@router.patch("/{ticket_id}")
def update_ticket(ticket_id: uuid.UUID, body: TicketUpdate, session: Session = Depends(get_session)):
    # 404 before touching anything, never an upsert
    ticket = _get_ticket_or_404(session, ticket_id)

    for field, value in ticket_values_to_storage(body.changes()).items():
        setattr(ticket, field, value)

    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    return {"data": to_api_ticket(ticket)}


@router.delete("/{ticket_id}", status_code=204)
def delete_ticket(ticket_id: uuid.UUID, session: Session = Depends(get_session)):
    ticket = _get_ticket_or_404(session, ticket_id)

    # notes go with it in the same commit (delete-orphan cascade)
    session.delete(ticket)
    session.commit()
    return Response(status_code=204)


@router.post("/{ticket_id}/notes", status_code=201)
def add_note(ticket_id: uuid.UUID, body: NoteCreate, session: Session = Depends(get_session)):
    _get_ticket_or_404(session, ticket_id)

    note = Note(ticket_id=ticket_id, content=body.content, author=body.author)
    session.add(note)
    session.commit()
    session.refresh(note)
    return {"data": to_api_note(note)}


@router.delete("/{ticket_id}/notes/{note_id}", status_code=204)
def delete_note(ticket_id: uuid.UUID, note_id: uuid.UUID, session: Session = Depends(get_session)):
    note = session.exec(select(Note).where(Note.id == note_id, Note.ticket_id == ticket_id)).first()
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")

    session.delete(note)
    session.commit()
    return Response(status_code=204)
