"""
Tests for ToolRouter
====================

Each Vapi tool call is dispatched through the router the way Vapi sends it;
Google Maps and Twilio are mocks, the stores are in-memory.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlmodel import Session

from conftest import CALL_ID, CALLER_NUMBER, tool_call_message
from wanda.maps_service import MapsServiceError, SearchOutcome
from wanda.models import Review, utcnow
from wanda.tool_router import HANDLERS
from wanda.tools.base import ToolName
from wanda.tools.reviews import RATING_NOT_WHOLE, RATING_OUT_OF_RANGE

SUSHI_RESULTS = [
    {"name": "Umi Sake House", "address": "2230 1st Ave", "placeId": "place-umi", "summary": "Lively izakaya"},
    {"name": "Shiro's Sushi", "address": "2401 2nd Ave", "placeId": "place-shiro", "summary": "Edomae classics"},
    {"name": "Kisaku", "address": "2101 N 55th St", "placeId": "place-kisaku", "summary": ""},
]


@pytest.fixture
def cached_sushi(calls, active_call):
    calls.record_search_results(CALL_ID, SUSHI_RESULTS)


# ═══════════════════════════════════════════════════════════════════════════════
# DISPATCH
# ═══════════════════════════════════════════════════════════════════════════════


class TestDispatch:
    def test_every_tool_has_a_handler(self):
        assert set(HANDLERS) == set(ToolName)

    def test_unknown_tool_is_acknowledged(self, tool_router):
        response = tool_router.handle(tool_call_message("wandaOrderPizza", {"size": "large"}))

        assert response == {
            "results": [{"toolCallId": "tool-call-1", "result": "Unknown function: wandaOrderPizza"}]
        }

    def test_arguments_may_arrive_as_json_string(self, run_tool, profiles, active_call):
        result = run_tool("wandaUpdateProfile", {"name": "Dana"}, as_string=True)

        assert "name" in result
        assert profiles.get(CALLER_NUMBER).name == "Dana"

    def test_unparseable_arguments_are_treated_as_empty(self, tool_router, active_call):
        message = tool_call_message("wandaSearchMaps")
        message["toolCallList"][0]["function"]["arguments"] = "{not json"

        response = tool_router.handle(message)

        assert response["results"][0]["result"] == "What kind of place would you like me to look for?"

    def test_only_first_tool_call_runs(self, tool_router, profiles, active_call):
        message = tool_call_message("wandaUpdateProfile", {"name": "Dana"})
        message["toolCallList"].append(
            {"id": "tool-call-2", "function": {"name": "wandaUpdateProfile", "arguments": {"city": "Austin"}}}
        )

        response = tool_router.handle(message)

        assert [result["toolCallId"] for result in response["results"]] == ["tool-call-1"]
        caller = profiles.get(CALLER_NUMBER)
        assert caller.name == "Dana"
        assert caller.city is None

    def test_missing_call_session_is_a_spoken_failure(self, run_tool):
        assert run_tool("wandaGetProfile", call_id="call-unknown") == "Call record not found."

    def test_unexpected_handler_error_is_spoken(self, run_tool, maps, active_call):
        maps.search.side_effect = RuntimeError("boom")

        result = run_tool("wandaSearchMaps", {"query": "tacos"})

        assert result.startswith("I'm sorry, something went wrong")

    def test_invalid_argument_types_ask_again(self, run_tool, active_call):
        result = run_tool("wandaSendDirections", {"placeNumber": "the second"})

        assert "didn't quite catch" in result


# ═══════════════════════════════════════════════════════════════════════════════
# SEARCH & DIRECTIONS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSearchMaps:
    def test_lists_places_and_caches_them(self, run_tool, maps, calls, active_call):
        maps.search.return_value = SearchOutcome(success=True, results=SUSHI_RESULTS)

        result = run_tool("wandaSearchMaps", {"query": "sushi", "location": "downtown"})

        assert result.startswith("Found 3 places:")
        assert "1. Umi Sake House - 2230 1st Ave - Lively izakaya" in result
        assert "3. Kisaku - 2101 N 55th St" in result
        assert "place ID" not in result
        assert [place["placeId"] for place in calls.get_search_results(CALL_ID)] == [
            "place-umi",
            "place-shiro",
            "place-kisaku",
        ]
        kwargs = maps.search.call_args.kwargs
        assert kwargs["max_results"] == 3
        assert kwargs["include_detail"] is True

    def test_search_is_personalised_with_the_profile(self, run_tool, maps, profiles, active_call):
        profiles.upsert_basics(CALLER_NUMBER, city="Seattle")

        run_tool("wandaSearchMaps", {"query": "coffee"})

        assert maps.search.call_args.kwargs["profile"].city == "Seattle"

    def test_personalisation_notes(self, run_tool, maps, active_call):
        maps.search.return_value = SearchOutcome(
            success=True, results=SUSHI_RESULTS[:1], used_profile_city=True, used_food_preferences=True
        )

        result = run_tool("wandaSearchMaps", {"query": "dinner"})

        assert result.startswith("Found 1 place:")
        assert "(Search used saved city from caller profile)" in result
        assert "(Search enhanced with caller's food preferences)" in result

    def test_empty_results(self, run_tool, maps, active_call):
        maps.search.return_value = SearchOutcome(success=True, results=[])

        result = run_tool("wandaSearchMaps", {"query": "unicorn rentals"})

        assert result == (
            "I couldn't find any places matching unicorn rentals. Would you like to try a different search?"
        )

    def test_provider_failure_apologises(self, run_tool, maps, active_call):
        maps.search.return_value = SearchOutcome(success=False, error="403 Forbidden")

        result = run_tool("wandaSearchMaps", {"query": "sushi"})

        assert result.startswith("I'm sorry, I couldn't search the map right now.")
        assert "different search" in result

    def test_cache_failure_still_returns_results(self, run_tool, maps, services, active_call):
        maps.search.return_value = SearchOutcome(success=True, results=SUSHI_RESULTS)
        services.calls = MagicMock(wraps=services.calls)
        services.calls.record_search_results.side_effect = RuntimeError("database is locked")

        result = run_tool("wandaSearchMaps", {"query": "sushi"})

        assert result.startswith("Found 3 places:")

    def test_review_search_lists_five_without_summaries(self, run_tool, maps, active_call):
        maps.search.return_value = SearchOutcome(success=True, results=SUSHI_RESULTS)

        result = run_tool("wandaReviewSearchMaps", {"query": "sushi"})

        assert "Lively izakaya" not in result
        assert "1. Umi Sake House - 2230 1st Ave (place ID: place-umi)" in result
        assert "3. Kisaku - 2101 N 55th St (place ID: place-kisaku)" in result
        kwargs = maps.search.call_args.kwargs
        assert kwargs["max_results"] == 5
        assert kwargs["include_detail"] is False


class TestSendDirections:
    def test_ordinal_reference_resolves_from_cache(self, run_tool, sms, calls, cached_sushi):
        result = run_tool("wandaSendDirections", {"placeNumber": 2})

        assert result == "Perfect! I've sent the directions to Shiro's Sushi to your phone via text message."
        sms.send.assert_called_once()
        assert sms.send.call_args.kwargs["to"] == CALLER_NUMBER
        body = sms.send.call_args.kwargs["body"]
        assert "Shiro's Sushi" in body
        assert "https://maps.google.com/maps?q=" in body
        record = calls.get(CALL_ID)
        assert record.directions_sent is True
        assert record.directions_place_name == "Shiro's Sushi"
        assert record.directions_place_address == "2401 2nd Ave"
        assert record.sent_message_id == "SM0123456789"

    def test_ordinal_out_of_range_is_recoverable(self, run_tool, sms, cached_sushi):
        result = run_tool("wandaSendDirections", {"placeNumber": 5})

        assert result.startswith("I couldn't find that place number in your recent search results.")
        sms.send.assert_not_called()

    def test_ordinal_without_previous_search(self, run_tool, sms, active_call):
        result = run_tool("wandaSendDirections", {"placeNumber": 1})

        assert result.startswith("I couldn't find that place number")
        sms.send.assert_not_called()

    def test_name_matches_cached_place(self, run_tool, sms, calls, cached_sushi):
        run_tool("wandaSendDirections", {"placeName": "kisaku"})

        assert calls.get(CALL_ID).directions_place_address == "2101 N 55th St"

    def test_unmatched_name_without_address_is_not_guessed(self, run_tool, sms, cached_sushi):
        result = run_tool("wandaSendDirections", {"placeName": "Pizza Palace"})

        assert "couldn't find Pizza Palace" in result
        sms.send.assert_not_called()

    def test_unmatched_name_with_address_is_used(self, run_tool, sms, cached_sushi):
        result = run_tool("wandaSendDirections", {"placeName": "Pizza Palace", "placeAddress": "1 Pie Way"})

        assert "Pizza Palace" in result
        assert "1 Pie Way" in sms.send.call_args.kwargs["body"]

    def test_nothing_to_resolve_asks_for_the_name(self, run_tool, sms, cached_sushi):
        result = run_tool("wandaSendDirections", {})

        assert result.startswith("I need the name of the place first.")

    def test_sms_failure_apologises(self, run_tool, sms, calls, cached_sushi):
        sms.send.side_effect = RuntimeError("Twilio is down")

        result = run_tool("wandaSendDirections", {"placeNumber": 1})

        assert result == "I'm sorry, I couldn't send the directions right now. Please try again later."
        assert calls.get(CALL_ID).directions_sent is False


class TestGetPlaceDetails:
    def test_cached_place_details(self, run_tool, maps, cached_sushi):
        maps.place_details.return_value = {
            "name": "Umi Sake House",
            "formatted_address": "2230 1st Ave, Seattle",
            "international_phone_number": "+1 206-374-8717",
            "rating": 4.5,
            "user_ratings_total": 2310,
            "business_status": "OPERATIONAL",
            "opening_hours": {"open_now": True, "weekday_text": ["Monday: 4:00 PM – 12:00 AM"]},
            "website": "https://umisakehouse.com",
        }

        result = run_tool("wandaGetPlaceDetails", {"placeNumber": 1})

        maps.place_details.assert_called_once_with("place-umi")
        assert result.startswith("Here are the details for Umi Sake House:")
        assert "Phone: +1 206-374-8717" in result
        assert "Rating: 4.5/5 stars (2310 reviews)" in result
        assert "Currently: Open" in result
        assert "Website: https://umisakehouse.com" in result

    def test_unmatched_name_falls_back_to_find_place(self, run_tool, maps, cached_sushi):
        maps.find_place_id.return_value = "place-found"
        maps.place_details.return_value = {"name": "Pike Place Market", "formatted_address": "85 Pike St"}

        result = run_tool("wandaGetPlaceDetails", {"placeName": "Pike Place Market"})

        maps.find_place_id.assert_called_once_with("Pike Place Market")
        maps.place_details.assert_called_once_with("place-found")
        assert "Address: 85 Pike St" in result

    def test_place_that_cannot_be_identified(self, run_tool, maps, cached_sushi):
        maps.find_place_id.return_value = None

        result = run_tool("wandaGetPlaceDetails", {"placeName": "Nowhere Diner"})

        assert "couldn't get a specific identifier" in result
        maps.place_details.assert_not_called()

    def test_partial_details_are_still_a_success(self, run_tool, maps, cached_sushi):
        maps.place_details.return_value = {"name": "Kisaku"}

        result = run_tool("wandaGetPlaceDetails", {"placeNumber": 3})

        assert result.startswith("I found Kisaku, but unfortunately")

    def test_details_lookup_failure(self, run_tool, maps, cached_sushi):
        maps.place_details.side_effect = MapsServiceError("INVALID_REQUEST")

        result = run_tool("wandaGetPlaceDetails", {"placeId": "place-shiro"})

        assert result.startswith("Sorry, I couldn't retrieve the details for Shiro's Sushi")


# ═══════════════════════════════════════════════════════════════════════════════
# PROFILE
# ═══════════════════════════════════════════════════════════════════════════════


class TestProfileTools:
    def test_update_profile(self, run_tool, profiles, active_call):
        result = run_tool("wandaUpdateProfile", {"name": "Dana", "age": 34, "city": "Austin"})

        assert result.startswith("Great! I've updated your profile with your name, age, and city.")
        caller = profiles.get(CALLER_NUMBER)
        assert (caller.name, caller.age, caller.city) == ("Dana", 34, "Austin")
        assert caller.last_called_at is not None

    def test_update_profile_with_nothing_valid(self, run_tool, profiles, active_call):
        result = run_tool("wandaUpdateProfile", {"age": 400})

        assert result == "No valid information was provided to update your profile."

    def test_food_preferences_from_conversation(self, run_tool, profiles, active_call):
        result = run_tool(
            "wandaUpdatePreferences",
            {"preferenceType": "food", "action": "add", "preferences": ["Vegetarian", "vegan"]},
        )

        assert "Vegetarian, vegan" in result
        food = profiles.get(CALLER_NUMBER).food_preferences
        assert [value.casefold() for value in food] == ["vegetarian", "vegan"]
        assert food == ["Vegetarian", "vegan"]

    def test_single_preference_string(self, run_tool, profiles, active_call):
        run_tool("wandaUpdatePreferences", {"preferenceType": "activities", "action": "add", "preferences": "Hiking"})

        assert profiles.get(CALLER_NUMBER).activities_preferences == ["Hiking"]

    def test_replace_and_remove(self, run_tool, profiles, active_call):
        run_tool("wandaUpdatePreferences", {"preferenceType": "shopping", "action": "add", "preferences": ["Vintage", "Books"]})

        replaced = run_tool(
            "wandaUpdatePreferences",
            {"preferenceType": "shopping", "action": "replace", "preferences": ["Records"]},
        )
        missing = run_tool(
            "wandaUpdatePreferences",
            {"preferenceType": "shopping", "action": "remove", "preferences": ["Books"]},
        )

        assert "updated your shopping preferences to: Records" in replaced
        assert missing == "None of those shopping preferences were found in your profile to remove."
        assert profiles.get(CALLER_NUMBER).shopping_preferences == ["Records"]

    def test_duplicate_add_is_a_friendly_no_op(self, run_tool, active_call):
        run_tool("wandaUpdatePreferences", {"preferenceType": "food", "action": "add", "preferences": ["Thai"]})

        result = run_tool("wandaUpdatePreferences", {"preferenceType": "food", "action": "add", "preferences": ["THAI"]})

        assert result == "All of those food preferences are already saved in your profile."

    @pytest.mark.parametrize(
        "arguments, expected",
        [
            ({"preferenceType": "music", "action": "add", "preferences": ["Jazz"]}, "Which kind of preferences"),
            ({"preferenceType": "food", "action": "swap", "preferences": ["Thai"]}, "Should I add, remove, or replace"),
        ],
    )
    def test_invalid_type_or_action(self, run_tool, arguments, expected):
        assert run_tool("wandaUpdatePreferences", arguments).startswith(expected)

    def test_get_profile_for_unknown_caller(self, run_tool, active_call):
        assert run_tool("wandaGetProfile").startswith("I don't have any profile information saved for you yet.")

    def test_get_profile_for_bare_profile(self, run_tool, profiles, active_call):
        profiles.get_or_create(CALLER_NUMBER)

        assert run_tool("wandaGetProfile").startswith("I have your phone number saved")

    def test_get_profile_summary_is_idempotent(self, run_tool, profiles, active_call):
        profiles.upsert_basics(CALLER_NUMBER, name="Dana", city="Austin")
        profiles.merge_preferences(CALLER_NUMBER, "food", "add", ["Thai", "Tacos"])

        first = run_tool("wandaGetProfile")
        second = run_tool("wandaGetProfile")

        assert first == second
        assert "- Name: Dana" in first
        assert "- City: Austin" in first
        assert "- Food preferences: Thai, Tacos" in first


# ═══════════════════════════════════════════════════════════════════════════════
# REVIEWS
# ═══════════════════════════════════════════════════════════════════════════════


class TestReviewTools:
    def _review(self, run_tool, rating, comment="Lovely spot", place_id="place-umi"):
        return run_tool("wandaCreateReview", {"placeId": place_id, "comment": comment, "rating": rating})

    @pytest.mark.parametrize("rating", [1, 5, 4.0, "3"])
    def test_valid_ratings_are_saved(self, run_tool, reviews, active_call, rating):
        result = self._review(run_tool, rating)

        assert result.startswith(f"Perfect! I've saved your {int(float(rating))}-star review.")
        saved = reviews.for_place("place-umi")
        assert len(saved) == 1
        assert saved[0].phone_number == "5551234567"
        assert saved[0].call_id == CALL_ID

    def test_rating_categories_have_distinct_messages(self, run_tool, reviews, active_call):
        too_low = self._review(run_tool, 0)
        too_high = self._review(run_tool, 6)
        not_whole = self._review(run_tool, 3.5)

        assert too_low == too_high == RATING_OUT_OF_RANGE
        assert not_whole == RATING_NOT_WHOLE
        assert RATING_OUT_OF_RANGE != RATING_NOT_WHOLE
        assert reviews.for_place("place-umi") == []

    def test_rating_checked_before_comment_and_place(self, run_tool, active_call):
        result = run_tool("wandaCreateReview", {"rating": 9})

        assert result == RATING_OUT_OF_RANGE

    def test_comment_and_place_are_required(self, run_tool, active_call):
        assert self._review(run_tool, 4, comment="  ") == "Please provide a comment for your review."
        assert self._review(run_tool, 4, place_id="") == "I need a valid place ID to save your review."

    def test_search_reviews_summary(self, run_tool, engine, active_call):
        now = utcnow()
        with Session(engine) as session:
            for age_days, comment, rating in [
                (0, "x" * 150, 4),
                (1, "Great sake list and friendly staff", 5),
                (2, "Too loud for me", 2),
                (3, "Fine", 3),
            ]:
                session.add(
                    Review(place_id="place-umi", comment=comment, rating=rating, created_at=now - timedelta(days=age_days))
                )
            session.commit()

        result = run_tool("wandaSearchReviews", {"placeId": "place-umi", "placeName": "Umi Sake House"})

        assert result.startswith("I found 4 reviews for Umi Sake House with an average rating of 3.5 stars.")
        assert result.count('\n- "') == 3
        assert '"' + "x" * 100 + '..."' in result
        assert "And 1 more review." in result
        assert result.endswith("Would you like to leave your own review for this place?")

    def test_search_reviews_with_none_saved(self, run_tool, active_call):
        result = run_tool("wandaSearchReviews", {"placeId": "place-new"})

        assert result == "I couldn't find any reviews for this place yet. You could be the first to leave a review!"

    def test_review_saved_under_place_named_from_last_search(self, run_tool, reviews, cached_sushi):
        result = run_tool("wandaCreateReview", {"placeName": "shiro's", "comment": "Best nigiri", "rating": 5})

        assert result.startswith("Perfect! I've saved your 5-star review.")
        assert [review.comment for review in reviews.for_place("place-shiro")] == ["Best nigiri"]

    def test_review_place_number_outside_last_search(self, run_tool, reviews, cached_sushi):
        result = run_tool("wandaCreateReview", {"placeNumber": 7, "comment": "Nice", "rating": 4})

        assert result.startswith("I couldn't find that place number in your recent search results.")
        assert "you'd like to review?" in result

    def test_review_place_number_without_a_search(self, run_tool, active_call):
        result = run_tool("wandaCreateReview", {"placeNumber": 1, "comment": "Nice", "rating": 4})

        assert result.startswith("I couldn't find that place number")

    def test_search_reviews_by_place_number(self, run_tool, reviews, cached_sushi):
        reviews.create(place_id="place-kisaku", comment="Quiet and precise", rating=4)

        result = run_tool("wandaSearchReviews", {"placeNumber": 3})

        assert result.startswith("I found 1 review for Kisaku with an average rating of 4 stars.")
        assert '- "Quiet and precise"' in result

    def test_search_reviews_needs_a_place(self, run_tool, active_call):
        assert run_tool("wandaSearchReviews", {}) == "I need a valid place ID to search for reviews."


# ═══════════════════════════════════════════════════════════════════════════════
# SCENARIOS
# ═══════════════════════════════════════════════════════════════════════════════


def test_search_then_directions_to_the_second_result(run_tool, maps, sms, calls, active_call):
    maps.search.return_value = SearchOutcome(success=True, results=SUSHI_RESULTS)

    run_tool("wandaSearchMaps", {"query": "sushi", "location": "downtown"})
    result = run_tool("wandaSendDirections", {"placeNumber": 2})

    assert "Shiro's Sushi" in result
    sms.send.assert_called_once()
    assert calls.get(CALL_ID).directions_sent is True


def test_review_search_then_review_by_number(run_tool, maps, reviews, active_call):
    maps.search.return_value = SearchOutcome(success=True, results=SUSHI_RESULTS)

    found = run_tool("wandaReviewSearchMaps", {"query": "umi sake house"})
    saved = run_tool("wandaCreateReview", {"placeNumber": 1, "comment": "great", "rating": 5})
    summary = run_tool("wandaSearchReviews", {"placeNumber": 1})

    assert "place-umi" in found
    assert saved.startswith("Perfect! I've saved your 5-star review.")
    stored = reviews.for_place("place-umi")
    assert [(review.comment, review.rating, review.call_id) for review in stored] == [("great", 5, CALL_ID)]
    assert summary.startswith("I found 1 review for Umi Sake House with an average rating of 5 stars.")
