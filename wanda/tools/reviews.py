import logging
import math
from typing import Any, Optional

from wanda.profile_service import phone_key
from wanda.tools.base import ToolContext, ToolFailure, ToolResult
from wanda.tools.places import PlaceArguments, ResolvedPlace, resolve_place

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
SAMPLE_COMMENTS = 3
COMMENT_PREVIEW_CHARS = 100

RATING_OUT_OF_RANGE = "Please provide a rating between 1 and 5 stars."
RATING_NOT_WHOLE = "Ratings have to be whole stars. Could you give me a whole number from 1 to 5?"
RATING_MISSING = "How many stars would you give it, from 1 to 5?"
COMMENT_MISSING = "Please provide a comment for your review."
PLACE_MISSING = "I need a valid place ID to save your review."
SEARCH_PLACE_MISSING = "I need a valid place ID to search for reviews."


class CreateReviewArguments(PlaceArguments):
    comment: Optional[str] = None
    # Validated by hand so each kind of bad rating gets its own message.
    rating: Any = None


class SearchReviewsArguments(PlaceArguments):
    pass


def review_place(ctx: ToolContext, args: PlaceArguments, missing_message: str, purpose: str) -> ResolvedPlace:
    """
    Resolves the reviewed place from an explicit id or from the caller's
    last search, by number or by name. A place without an id can't hold
    reviews.
    """
    if not (_present(args.placeId) or args.placeNumber is not None or _present(args.placeName)):
        raise ToolFailure(missing_message)
    cached = ctx.services.calls.get_search_results(ctx.call_id)
    place = resolve_place(args, cached, purpose=purpose)
    if not place.place_id:
        raise ToolFailure(missing_message)
    return place


def _present(value: Optional[str]) -> bool:
    return bool((value or "").strip())


def validate_rating(rating) -> int:
    if rating is None or isinstance(rating, bool):
        raise ToolFailure(RATING_MISSING)
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ToolFailure(RATING_MISSING)
    if not math.isfinite(value) or not MIN_RATING <= value <= MAX_RATING:
        raise ToolFailure(RATING_OUT_OF_RANGE)
    if not value.is_integer():
        raise ToolFailure(RATING_NOT_WHOLE)
    return int(value)


def create_review(ctx: ToolContext, args: CreateReviewArguments) -> ToolResult:
    rating = validate_rating(args.rating)
    comment = (args.comment or "").strip()
    if not comment:
        raise ToolFailure(COMMENT_MISSING)
    place = review_place(ctx, args, PLACE_MISSING, purpose="to review")
    place_id = place.place_id

    phone_number = ctx.caller_phone_number()
    try:
        ctx.services.reviews.create(
            place_id=place_id,
            comment=comment,
            rating=rating,
            phone_number=phone_key(phone_number),
            call_id=ctx.call_id,
        )
    except Exception as e:
        logger.error(f"Error creating review for call {ctx.call_id}: {e}", exc_info=True)
        return ToolResult(
            "I'm sorry, I couldn't save your review right now. Please try again later.",
            error=True,
        )

    return ToolResult(
        f"Perfect! I've saved your {rating}-star review. Your feedback helps other people "
        "discover great places and helps businesses improve. Thank you for sharing your experience!"
    )


def search_reviews(ctx: ToolContext, args: SearchReviewsArguments) -> ToolResult:
    place = review_place(ctx, args, SEARCH_PLACE_MISSING, purpose="reviews for")
    place_id = place.place_id
    place_text = place.name or "this place"

    try:
        reviews = ctx.services.reviews.for_place(place_id)
    except Exception as e:
        logger.error(f"Error searching reviews for place {place_id}: {e}", exc_info=True)
        return ToolResult(
            "I'm sorry, I couldn't search for reviews right now. Please try again later.",
            error=True,
        )

    if not reviews:
        return ToolResult(
            f"I couldn't find any reviews for {place_text} yet. You could be the first to leave a review!"
        )

    total = len(reviews)
    average = round(sum(review.rating for review in reviews) / total, 1)
    message = (
        f"I found {total} {'review' if total == 1 else 'reviews'} for {place_text} "
        f"with an average rating of {average:g} {'star' if average == 1 else 'stars'}."
    )

    comments = [review.comment.strip() for review in reviews if review.comment and review.comment.strip()]
    if comments:
        message += "\n\nHere's what people are saying:"
        for comment in comments[:SAMPLE_COMMENTS]:
            if len(comment) > COMMENT_PREVIEW_CHARS:
                comment = comment[:COMMENT_PREVIEW_CHARS] + "..."
            message += f'\n- "{comment}"'
        remaining = len(comments) - SAMPLE_COMMENTS
        if remaining > 0:
            message += f"\n\nAnd {remaining} more {'review' if remaining == 1 else 'reviews'}."

    message += "\n\nWould you like to leave your own review for this place?"
    logger.info(f"Found {total} reviews for place {place_id} with average rating {average}")
    return ToolResult(message)
