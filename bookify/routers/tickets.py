from fastapi import APIRouter, Depends, HTTPException
from typing import List
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.models.ticket import Ticket, TicketCreate, TicketUpdate
from bookify.services import tickets_service

router = APIRouter()


@router.get("/event/{event_id}", response_model=List[Ticket])
async def list_event_tickets(event_id: int):
    """Ticket types on sale for an event, with remaining quantities"""
    return await tickets_service.get_event_tickets(event_id)


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(ticket_id: int):
    ticket = await tickets_service.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.post("", response_model=Ticket, status_code=201)
async def create_ticket(data: TicketCreate, user: AuthenticatedUser = Depends(require_organizer)):
    return await tickets_service.create_ticket(data, user.user_id, user.is_admin)


@router.put("/{ticket_id}", response_model=Ticket)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Partial update. Quantity, price, limit and points apply only when positive;
    quantity_available cannot drop below what is already sold.
    """
    ticket = await tickets_service.update_ticket(ticket_id, data, user.user_id, user.is_admin)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.delete("/{ticket_id}", status_code=204)
async def delete_ticket(ticket_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await tickets_service.delete_ticket(ticket_id):
        raise HTTPException(status_code=404, detail="Ticket not found")
    return None
