from pydantic import BaseModel


class OfferAvailability(BaseModel):
    offer_id: int
    seats: int
    confirmed_seats: int
    available_seats: int
