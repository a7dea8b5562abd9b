import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import quote_plus

import requests

from wanda.models import Caller

logger = logging.getLogger(__name__)

PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
FIND_PLACE_URL = "https://maps.googleapis.com/maps/api/place/findplacefromtext/json"
PLACE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

SEARCH_PAGE_SIZE = 5
MAX_BIAS_RADIUS_METERS = 50000.0
REQUEST_TIMEOUT_SECONDS = 15

FOOD_INTENT = re.compile(
    r"restaurant|food|eat|dining|cuisine|lunch|dinner|breakfast|brunch|cafe|coffee",
    re.IGNORECASE,
)
LAT_LNG = re.compile(r"^\s*(-?\d{1,2}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")

DETAIL_FIELDS = [
    "name",
    "formatted_address",
    "international_phone_number",
    "opening_hours",
    "website",
    "rating",
    "place_id",
    "business_status",
    "user_ratings_total",
]


class MapsServiceError(Exception):
    """Google Maps could not be reached or rejected the request."""


@dataclass
class SearchOutcome:
    success: bool
    results: List[Dict] = field(default_factory=list)
    error: Optional[str] = None
    enhanced_query: Optional[str] = None
    used_profile_city: bool = False
    used_food_preferences: bool = False


class GoogleMapsService:
    def __init__(self, api_key: Optional[str], http: Optional[requests.Session] = None):
        self.api_key = api_key
        self.http = http or requests.Session()

    def search(
        self,
        query: str,
        location: Optional[str] = None,
        radius: Optional[float] = None,
        max_results: int = 3,
        include_detail: bool = False,
        profile: Optional[Caller] = None,
    ) -> SearchOutcome:
        """
        Text search personalised with the caller's profile.

        The saved city stands in for a missing location, and food searches
        are nudged with up to two saved food preferences. An empty result set
        is a successful outcome; only provider failures are unsuccessful.
        """
        if not self.api_key:
            return SearchOutcome(success=False, error="Google Maps API key is not configured.")

        search_location = location.strip() if isinstance(location, str) and location.strip() else None
        used_profile_city = False
        if not search_location and profile is not None and profile.city:
            search_location = profile.city
            used_profile_city = True
            logger.info(f"Using caller's profile city for search: {search_location}")

        enhanced_query = query.strip()
        used_food_preferences = False
        food_preferences = list(profile.food_preferences or []) if profile is not None else []
        if food_preferences and FOOD_INTENT.search(enhanced_query):
            enhanced_query = f"{enhanced_query} {' '.join(food_preferences[:2])}"
            used_food_preferences = True
            logger.info(f"Enhanced food search query with preferences: {enhanced_query}")

        text_query = f"{enhanced_query} in {search_location}" if search_location else enhanced_query

        body = {"textQuery": text_query, "pageSize": SEARCH_PAGE_SIZE}
        bias = self._location_bias(search_location, radius)
        if bias:
            body["locationBias"] = bias

        field_mask = ["places.displayName", "places.formattedAddress", "places.id"]
        if include_detail:
            field_mask.append("places.editorialSummary")

        try:
            response = self.http.post(
                PLACES_SEARCH_URL,
                headers={
                    "Content-Type": "application/json",
                    "X-Goog-Api-Key": self.api_key,
                    "X-Goog-FieldMask": ",".join(field_mask),
                },
                json=body,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"Error calling Google Places search: {str(e)}")
            return SearchOutcome(success=False, error=f"An unexpected error occurred: {str(e)}")

        if not response.ok:
            error = f"Failed to fetch from Google Maps API: {response.status_code} {response.reason}"
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            if message:
                error += f" - {message}"
            logger.error(error)
            return SearchOutcome(success=False, error=error)

        try:
            places = response.json().get("places") or []
        except ValueError:
            logger.error("Google Places search returned a non-JSON body")
            return SearchOutcome(success=False, error="Google Maps returned an unreadable response.")

        if not places:
            logger.info(f"No places found for the query: {text_query}")

        results = [self._to_result(place) for place in places[:max_results]]
        return SearchOutcome(
            success=True,
            results=results,
            enhanced_query=enhanced_query,
            used_profile_city=used_profile_city,
            used_food_preferences=used_food_preferences,
        )

    def find_place_id(self, text: str) -> Optional[str]:
        """Resolves free text to a place id, or None when nothing matches."""
        data = self._get_json(
            FIND_PLACE_URL,
            {"input": text, "inputtype": "textquery", "fields": "place_id"},
        )
        candidates = data.get("candidates") or []
        if data.get("status") != "OK" or not candidates:
            logger.warning(f"Find Place did not return a place ID for: {text}. Status: {data.get('status')}")
            return None
        return candidates[0].get("place_id")

    def place_details(self, place_id: str) -> Dict:
        data = self._get_json(
            PLACE_DETAILS_URL,
            {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS)},
        )
        if data.get("status") != "OK":
            raise MapsServiceError(
                data.get("error_message") or f"Place Details returned status {data.get('status')}"
            )
        return data.get("result") or {}

    @staticmethod
    def directions_link(name: str, address: Optional[str] = None) -> str:
        return "https://maps.google.com/maps?q=" + quote_plus(f"{name} {address or ''}".strip())

    def _get_json(self, url: str, params: Dict) -> Dict:
        if not self.api_key:
            raise MapsServiceError("Google Maps API key is not configured.")
        try:
            response = self.http.get(
                url, params={**params, "key": self.api_key}, timeout=REQUEST_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise MapsServiceError(str(e)) from e

    @staticmethod
    def _to_result(place: Dict) -> Dict:
        return {
            "name": (place.get("displayName") or {}).get("text") or "Unknown Place",
            "address": place.get("formattedAddress") or "",
            "placeId": place.get("id") or "",
            "summary": (place.get("editorialSummary") or {}).get("text") or "",
        }

    @staticmethod
    def _location_bias(location: Optional[str], radius) -> Optional[Dict]:
        if not location or radius is None:
            return None
        match = LAT_LNG.match(location)
        if not match:
            return None
        try:
            radius = float(radius)
        except (TypeError, ValueError):
            return None
        if radius <= 0:
            return None
        return {
            "circle": {
                "center": {"latitude": float(match.group(1)), "longitude": float(match.group(2))},
                "radius": min(radius, MAX_BIAS_RADIUS_METERS),
            }
        }
