import logging
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from wanda.models import Review

logger = logging.getLogger(__name__)


class ReviewService:
    """Append-only place reviews captured over the phone."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create(
        self,
        place_id: str,
        comment: str,
        rating: int,
        phone_number: Optional[str] = None,
        call_id: Optional[str] = None,
    ) -> Review:
        review = Review(
            place_id=place_id,
            comment=comment,
            rating=rating,
            phone_number=phone_number,
            call_id=call_id,
        )
        with Session(self.engine) as session:
            session.add(review)
            session.commit()
            session.refresh(review)
        logger.info(f"Created review {review.id} for place {place_id} by {phone_number}")
        return review

    def for_place(self, place_id: str) -> List[Review]:
        """All reviews for a place, newest first."""
        with Session(self.engine) as session:
            statement = (
                select(Review)
                .where(Review.place_id == place_id)
                .order_by(Review.created_at.desc(), Review.id)
            )
            return list(session.exec(statement).all())
