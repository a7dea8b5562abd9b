import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from wanda.maps_service import MapsServiceError
from wanda.models import utcnow
from wanda.tools.base import ToolArguments, ToolContext, ToolFailure, ToolResult

logger = logging.getLogger(__name__)

CONVERSATION_RESULTS = 3
REVIEW_LOOKUP_RESULTS = 5


class SearchMapsArguments(ToolArguments):
    query: Optional[str] = None
    location: Optional[str] = None
    radius: Optional[float] = None


class PlaceArguments(ToolArguments):
    placeName: Optional[str] = None
    placeAddress: Optional[str] = None
    placeId: Optional[str] = None
    placeNumber: Optional[int] = None


@dataclass
class ResolvedPlace:
    name: Optional[str]
    address: Optional[str] = None
    place_id: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def match_by_name(name: str, cached: List[Dict]) -> Optional[Dict]:
    """
    Case-insensitive substring match in either direction. With several
    cached places sharing a word the first one wins.
    """
    wanted = name.casefold()
    for place in cached:
        candidate = (place.get("name") or "").casefold()
        if candidate and (wanted in candidate or candidate in wanted):
            return place
    return None


def resolve_place(
    args: PlaceArguments,
    cached: Optional[List[Dict]],
    purpose: str,
    allow_unmatched_name: bool = False,
) -> ResolvedPlace:
    """
    Turns a conversational place reference into a concrete place.

    Precedence: explicit place id, then the 1-indexed position in the last
    search, then a name match against the last search. An unmatched name is
    only used as-is when an address came with it or the caller allows it.
    """
    cached = cached or []
    name = _clean(args.placeName)
    address = _clean(args.placeAddress)
    place_id = _clean(args.placeId)

    if place_id:
        for place in cached:
            if place.get("placeId") == place_id:
                return ResolvedPlace(place.get("name"), place.get("address"), place_id)
        return ResolvedPlace(name, address, place_id)

    if args.placeNumber is not None:
        if not 1 <= args.placeNumber <= len(cached):
            raise ToolFailure(
                "I couldn't find that place number in your recent search results. "
                f"Could you tell me the name of the place you'd like {purpose}?"
            )
        place = cached[args.placeNumber - 1]
        return ResolvedPlace(place.get("name"), place.get("address"), place.get("placeId"))

    if name:
        place = match_by_name(name, cached)
        if place is not None:
            logger.info(f"Found matching place in search results: {place.get('name')}")
            return ResolvedPlace(place.get("name"), place.get("address"), place.get("placeId"))
        logger.info(f'No matching place found for "{name}" in recent search results')
        if address or allow_unmatched_name:
            return ResolvedPlace(name, address)
        raise ToolFailure(
            f"I couldn't find {name} in your recent search results. "
            f"Could you tell me which place you'd like {purpose}, or give me its address?"
        )

    raise ToolFailure(
        f"I need the name of the place first. Could you tell me which place you'd like {purpose}?"
    )


def _format_places(results: List[Dict], include_summary: bool, include_place_id: bool) -> str:
    lines = []
    for index, place in enumerate(results, start=1):
        line = f"{index}. {place['name']}"
        if place.get("address"):
            line += f" - {place['address']}"
        if include_summary and place.get("summary"):
            line += f" - {place['summary']}"
        if include_place_id and place.get("placeId"):
            line += f" (place ID: {place['placeId']})"
        lines.append(line)
    return "\n".join(lines)


def _run_search(ctx: ToolContext, args: SearchMapsArguments, max_results: int, include_detail: bool) -> ToolResult:
    query = _clean(args.query)
    if not query:
        raise ToolFailure("What kind of place would you like me to look for?")

    outcome = ctx.services.maps.search(
        query=query,
        location=args.location,
        radius=args.radius,
        max_results=max_results,
        include_detail=include_detail,
        profile=ctx.caller_profile(),
    )

    if not outcome.success:
        logger.error(f"Map search failed for call {ctx.call_id}: {outcome.error}")
        return ToolResult(
            "I'm sorry, I couldn't search the map right now. Would you like to try a different search?",
            error=True,
        )

    try:
        ctx.services.calls.record_search_results(ctx.call_id, outcome.results)
    except Exception as e:
        logger.error(f"Could not cache search results for call {ctx.call_id}: {e}", exc_info=True)

    if not outcome.results:
        return ToolResult(
            f"I couldn't find any places matching {query}. Would you like to try a different search?"
        )

    count = len(outcome.results)
    message = f"Found {count} {'place' if count == 1 else 'places'}:\n\n"
    message += _format_places(outcome.results, include_summary=include_detail, include_place_id=not include_detail)
    if outcome.used_profile_city:
        message += "\n\n(Search used saved city from caller profile)"
    if outcome.used_food_preferences:
        message += "\n\n(Search enhanced with caller's food preferences)"
    return ToolResult(message)


def search_maps(ctx: ToolContext, args: SearchMapsArguments) -> ToolResult:
    return _run_search(ctx, args, CONVERSATION_RESULTS, include_detail=True)


def review_search_maps(ctx: ToolContext, args: SearchMapsArguments) -> ToolResult:
    return _run_search(ctx, args, REVIEW_LOOKUP_RESULTS, include_detail=False)


def send_directions(ctx: ToolContext, args: PlaceArguments) -> ToolResult:
    phone_number = ctx.caller_phone_number()
    cached = ctx.services.calls.get_search_results(ctx.call_id)
    place = resolve_place(args, cached, purpose="directions to")
    if not place.name:
        raise ToolFailure(
            "I need the name of the place to send you directions. "
            "Could you tell me which place you'd like directions to?"
        )

    link = ctx.services.maps.directions_link(place.name, place.address)
    body = f"Here are the directions to {place.name}:\n\n"
    if place.address:
        body += f"{place.address}\n"
    body += f"{link}\n\nSent by Wanda"
    if ctx.services.preferences_url:
        body += f"\n\nManage your preferences at {ctx.services.preferences_url}"

    try:
        message_sid = ctx.services.sms.send(to=phone_number, body=body)
    except Exception as e:
        logger.error(f"Error sending directions SMS for call {ctx.call_id}: {e}", exc_info=True)
        return ToolResult(
            "I'm sorry, I couldn't send the directions right now. Please try again later.",
            error=True,
        )

    try:
        ctx.services.calls.upsert(
            ctx.call_id,
            directions_sent=True,
            directions_sent_at=utcnow(),
            directions_place_name=place.name,
            directions_place_address=place.address,
            sent_message_id=message_sid,
        )
    except Exception as e:
        logger.error(f"Could not record sent directions for call {ctx.call_id}: {e}", exc_info=True)

    return ToolResult(
        f"Perfect! I've sent the directions to {place.name} to your phone via text message."
    )


def _describe_details(details: Dict, fallback_name: str) -> ToolResult:
    name = details.get("name") or fallback_name
    parts = [f"Here are the details for {name}:"]

    if details.get("formatted_address"):
        parts.append(f"\nAddress: {details['formatted_address']}")
    if details.get("international_phone_number"):
        parts.append(f"\nPhone: {details['international_phone_number']}")
    if details.get("rating"):
        if details.get("user_ratings_total"):
            parts.append(f"\nRating: {details['rating']}/5 stars ({details['user_ratings_total']} reviews)")
        else:
            parts.append(f"\nRating: {details['rating']}/5 stars")
    status = details.get("business_status")
    if status:
        if status == "OPERATIONAL":
            parts.append("\nStatus: Currently operational")
        else:
            parts.append(f"\nStatus: {status.lower().replace('_', ' ')}")
    hours = details.get("opening_hours") or {}
    if "open_now" in hours:
        parts.append(f"\nCurrently: {'Open' if hours['open_now'] else 'Closed'}")
    if hours.get("weekday_text"):
        parts.append("\nHours:")
        parts.extend(f"\n  {line}" for line in hours["weekday_text"])
    if details.get("website"):
        parts.append(f"\nWebsite: {details['website']}")

    if len(parts) == 1:
        # Found the place but nothing worth reading out.
        return ToolResult(
            f"I found {name}, but unfortunately I couldn't get more specific details "
            "like its address or phone number right now."
        )
    return ToolResult("".join(parts))


def get_place_details(ctx: ToolContext, args: PlaceArguments) -> ToolResult:
    cached = ctx.services.calls.get_search_results(ctx.call_id)
    place = resolve_place(args, cached, purpose="details about", allow_unmatched_name=True)
    display_name = place.name or "that place"

    place_id = place.place_id
    if not place_id and place.name:
        lookup = f"{place.name} {place.address}" if place.address else place.name
        logger.info(f"No placeId available, attempting to find place ID for: {lookup}")
        try:
            place_id = ctx.services.maps.find_place_id(lookup)
        except MapsServiceError as e:
            logger.error(f'Error calling Find Place for "{lookup}": {e}')

    if not place_id:
        return ToolResult(
            f"I found {display_name}, but I couldn't get a specific identifier to fetch its full details. "
            "Could you try a more specific search or give me the address?",
            error=True,
        )

    try:
        details = ctx.services.maps.place_details(place_id)
    except MapsServiceError as e:
        logger.error(f'Place Details lookup failed for "{place_id}": {e}')
        return ToolResult(
            f"Sorry, I couldn't retrieve the details for {display_name} right now. Please try again in a moment.",
            error=True,
        )

    return _describe_details(details, display_name)
