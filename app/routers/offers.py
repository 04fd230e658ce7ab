from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.crud import booking as booking_crud
from app.schemas.offer import OfferAvailability

router = APIRouter()


@router.get("/{offer_id}/availability", response_model=OfferAvailability)
def read_offer_availability(offer_id: int, db: Session = Depends(get_db)):
    availability = booking_crud.get_available_seats(db, offer_id)
    if availability is None:
        raise HTTPException(status_code=404, detail="Offer not found")
    return availability
