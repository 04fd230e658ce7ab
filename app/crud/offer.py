from sqlalchemy.orm import Session
from typing import Optional

from app.models.offer import Offer


def get_offer(db: Session, offer_id: int) -> Optional[Offer]:
    return db.query(Offer).filter(Offer.id == offer_id).first()
