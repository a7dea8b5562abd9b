import logging
from typing import Any, List, Optional

from wanda.models import PreferenceAction, PreferenceCategory
from wanda.profile_service import clean_preferences, phone_key
from wanda.tools.base import ToolArguments, ToolContext, ToolFailure, ToolResult

logger = logging.getLogger(__name__)

PREFERENCE_LABELS = [
    (PreferenceCategory.FOOD, "Food preferences"),
    (PreferenceCategory.ACTIVITIES, "Activity preferences"),
    (PreferenceCategory.SHOPPING, "Shopping preferences"),
    (PreferenceCategory.ENTERTAINMENT, "Entertainment preferences"),
]


class UpdateProfileArguments(ToolArguments):
    name: Optional[str] = None
    age: Any = None
    city: Optional[str] = None


class UpdatePreferencesArguments(ToolArguments):
    preferenceType: Optional[str] = None
    action: Optional[str] = None
    # A bare string is accepted as a single preference.
    preferences: Any = None


class GetProfileArguments(ToolArguments):
    pass


def _join_naturally(items: List[str]) -> str:
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return ", ".join(items[:-1]) + ", and " + items[-1]


def update_profile(ctx: ToolContext, args: UpdateProfileArguments) -> ToolResult:
    phone_number = ctx.caller_phone_number()
    applied = ctx.services.profiles.upsert_basics(
        phone_key(phone_number),
        name=args.name,
        age=args.age,
        city=args.city,
        from_call=True,
    )
    if not applied:
        return ToolResult("No valid information was provided to update your profile.")

    return ToolResult(
        f"Great! I've updated your profile with your {_join_naturally(applied)}. "
        "This will help me give you better recommendations in the future!"
    )


def update_preferences(ctx: ToolContext, args: UpdatePreferencesArguments) -> ToolResult:
    try:
        category = PreferenceCategory((args.preferenceType or "").strip().lower())
    except ValueError:
        raise ToolFailure(
            "Which kind of preferences should I update: food, activities, shopping, or entertainment?"
        )
    try:
        action = PreferenceAction((args.action or "").strip().lower())
    except ValueError:
        raise ToolFailure("Should I add, remove, or replace those preferences?")

    if not clean_preferences(args.preferences):
        return ToolResult("No valid preferences were provided.")

    phone_number = ctx.caller_phone_number()
    update = ctx.services.profiles.merge_preferences(
        phone_key(phone_number), category, action, args.preferences, from_call=True
    )
    label = category.value

    if action is PreferenceAction.ADD:
        if not update.changed:
            return ToolResult(f"All of those {label} preferences are already saved in your profile.")
        description = f"added {', '.join(update.added)} to your {label} preferences"
    elif action is PreferenceAction.REMOVE:
        if not update.changed:
            return ToolResult(f"None of those {label} preferences were found in your profile to remove.")
        description = f"removed {', '.join(update.removed)} from your {label} preferences"
    else:
        if not update.changed:
            return ToolResult(f"Your {label} preferences are already set to {', '.join(update.preferences)}.")
        description = f"updated your {label} preferences to: {', '.join(update.preferences)}"

    return ToolResult(f"Great! I've {description}. This will help me give you better recommendations!")


def get_profile(ctx: ToolContext, args: GetProfileArguments) -> ToolResult:
    phone_number = ctx.caller_phone_number()
    profile = ctx.services.profiles.get(phone_key(phone_number))

    if profile is None:
        return ToolResult(
            "I don't have any profile information saved for you yet. "
            "Would you like to add some information to help me give you better recommendations?"
        )

    lines = []
    if profile.name:
        lines.append(f"Name: {profile.name}")
    if profile.age:
        lines.append(f"Age: {profile.age}")
    if profile.city:
        lines.append(f"City: {profile.city}")
    for category, label in PREFERENCE_LABELS:
        values = profile.preferences(category)
        if values:
            lines.append(f"{label}: {', '.join(values)}")

    if not lines:
        return ToolResult(
            "I have your phone number saved, but no other profile information yet. "
            "Would you like to add your name, city, or preferences?"
        )

    return ToolResult(
        "Here's what I have saved in your profile:\n"
        + "\n".join(f"- {line}" for line in lines)
        + "\n\nWould you like to update any of this information?"
    )
