from fastapi import APIRouter, Depends, HTTPException, Query, Form, File, UploadFile
from typing import List, Optional
from bookify.core.dependencies import require_admin, require_organizer, AuthenticatedUser
from bookify.core.forms import parse_form, blank_to_none, upload_optional, upload_or_default
from bookify.models.event import (
    Event, EventSummary, EventCreate, EventUpdate, EventCreatedResponse, EventStatus
)
from bookify.services import events_service

router = APIRouter()


@router.get("", response_model=List[EventSummary])
async def list_events(
    category_id: Optional[int] = Query(None),
    org_id: Optional[int] = Query(None),
    status: Optional[EventStatus] = Query(None),
    search: Optional[str] = Query(None, description="Matches the event title"),
    upcoming: bool = Query(False, description="Only events that have not happened yet"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    return await events_service.get_events(
        category_id=category_id,
        org_id=org_id,
        status=status.value if status else None,
        search=search,
        upcoming=upcoming,
        limit=limit,
        offset=offset
    )


@router.get("/{event_id}", response_model=Event)
async def get_event(event_id: int):
    event = await events_service.get_event_by_id(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.post("", response_model=EventCreatedResponse, status_code=201)
async def create_event(
    org_id: str = Form(...),
    category_id: str = Form(...),
    title: str = Form(...),
    event_date: str = Form(...),
    description: Optional[str] = Form(None),
    location_name: Optional[str] = Form(None),
    location_address: Optional[str] = Form(None),
    capacity: Optional[str] = Form(None),
    age_restriction: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Create an event for an organization (multipart form).

    Organizers can only create events for organizations they belong to.
    Without an image the default one is used.
    """
    fields = dict(
        org_id=org_id,
        category_id=category_id,
        title=title,
        event_date=event_date,
        description=blank_to_none(description),
        location_name=blank_to_none(location_name),
        location_address=blank_to_none(location_address),
        capacity=blank_to_none(capacity),
        age_restriction=blank_to_none(age_restriction)
    )
    data = parse_form(EventCreate, **{k: v for k, v in fields.items() if v is not None})

    image_url = await upload_or_default(image, "events")
    event_id = await events_service.create_event(data, image_url, user.user_id, user.is_admin)
    return EventCreatedResponse(id=event_id, message="Event created")


@router.put("/{event_id}", response_model=Event)
async def update_event(
    event_id: int,
    category_id: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location_name: Optional[str] = Form(None),
    location_address: Optional[str] = Form(None),
    event_date: Optional[str] = Form(None),
    capacity: Optional[str] = Form(None),
    age_restriction: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(require_organizer)
):
    """Partial update (multipart form). Blank fields are left unchanged."""
    fields = dict(
        category_id=category_id,
        title=title,
        description=description,
        location_name=location_name,
        location_address=location_address,
        event_date=event_date,
        capacity=capacity,
        age_restriction=age_restriction,
        status=status
    )
    data = parse_form(EventUpdate, **{k: v for k, v in fields.items() if blank_to_none(v) is not None})

    image_url = await upload_optional(image, "events")
    event = await events_service.update_event(event_id, data, image_url, user.user_id, user.is_admin)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.delete("/{event_id}", status_code=204)
async def delete_event(event_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    if not await events_service.delete_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return None
