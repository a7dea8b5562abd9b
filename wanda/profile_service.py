import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from wanda.models import Caller, PreferenceAction, PreferenceCategory, utcnow

logger = logging.getLogger(__name__)

MAX_AGE = 150


def phone_key(phone_number) -> str:
    """Document key for a caller: digits only, North-American prefix dropped."""
    digits = re.sub(r"\D", "", str(phone_number or ""))
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


def clean_preferences(values: Optional[Iterable]) -> List[str]:
    """Trims, drops blanks and case-insensitive repeats, keeping the first form."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    cleaned: List[str] = []
    seen = set()
    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if not value or value.casefold() in seen:
            continue
        seen.add(value.casefold())
        cleaned.append(value)
    return cleaned


def _clean_age(age) -> Optional[int]:
    if age is None or isinstance(age, bool):
        return None
    try:
        value = float(age)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or not 0 < value < MAX_AGE:
        return None
    return int(value)


@dataclass
class PreferenceUpdate:
    category: PreferenceCategory
    action: PreferenceAction
    changed: bool
    preferences: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


class ProfileService:
    """Caller profiles keyed by phone number, persisted in the `callers` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, phone_number) -> Optional[Caller]:
        with Session(self.engine) as session:
            return session.get(Caller, phone_key(phone_number))

    def get_or_create(self, phone_number, from_call: bool = False) -> Caller:
        key = phone_key(phone_number)
        with Session(self.engine) as session:
            caller = session.get(Caller, key)
            if caller is None:
                caller = Caller(phone_number=key)
                logger.info(f"Created new caller profile for {key}")
            elif from_call:
                caller.last_called_at = utcnow()
            else:
                return caller
            session.add(caller)
            session.commit()
            session.refresh(caller)
            return caller

    def upsert_basics(
        self,
        phone_number,
        name: Optional[str] = None,
        age=None,
        city: Optional[str] = None,
        from_call: bool = False,
    ) -> List[str]:
        """
        Applies the valid subset of name/age/city and returns the names of the
        fields written. Returns an empty list (and writes nothing) when no
        valid value was supplied.
        """
        updates = {}
        if isinstance(name, str) and name.strip():
            updates["name"] = name.strip()
        cleaned_age = _clean_age(age)
        if cleaned_age is not None:
            updates["age"] = cleaned_age
        if isinstance(city, str) and city.strip():
            updates["city"] = city.strip()

        if not updates:
            logger.info(f"No valid profile fields supplied for {phone_key(phone_number)}")
            return []

        with Session(self.engine) as session:
            caller = self._load_for_write(session, phone_number)
            for field_name, value in updates.items():
                setattr(caller, field_name, value)
            self._stamp(caller, from_call)
            session.add(caller)
            session.commit()

        logger.info(f"Updated caller profile for {phone_key(phone_number)}: {updates}")
        return list(updates)

    def merge_preferences(
        self,
        phone_number,
        category,
        action,
        values,
        from_call: bool = False,
    ) -> PreferenceUpdate:
        category = PreferenceCategory(category)
        action = PreferenceAction(action)
        requested = clean_preferences(values)

        with Session(self.engine) as session:
            caller = self._load_for_write(session, phone_number)
            existing = caller.preferences(category)
            update = self._apply(category, action, existing, requested)
            if not update.changed:
                return update
            setattr(caller, category.field_name, update.preferences)
            self._stamp(caller, from_call)
            session.add(caller)
            session.commit()

        logger.info(
            f"{action.value} {category.value} preferences for {phone_key(phone_number)}: "
            f"{update.preferences}"
        )
        return update

    def merge_call_preferences(
        self, phone_number, preferences_by_category: Dict[PreferenceCategory, Iterable[str]]
    ) -> List[PreferenceUpdate]:
        """Adds preferences extracted from a finished call, category by category."""
        updates = []
        for category, values in preferences_by_category.items():
            if not clean_preferences(values):
                continue
            updates.append(
                self.merge_preferences(
                    phone_number, category, PreferenceAction.ADD, values, from_call=True
                )
            )
        return updates

    @staticmethod
    def _apply(
        category: PreferenceCategory,
        action: PreferenceAction,
        existing: List[str],
        requested: List[str],
    ) -> PreferenceUpdate:
        update = PreferenceUpdate(
            category=category,
            action=action,
            changed=False,
            preferences=list(existing),
        )
        if not requested:
            return update

        existing_keys = {value.casefold() for value in existing}
        requested_keys = {value.casefold() for value in requested}

        if action is PreferenceAction.ADD:
            update.added = [value for value in requested if value.casefold() not in existing_keys]
            update.preferences = list(existing) + update.added
            update.changed = bool(update.added)
        elif action is PreferenceAction.REMOVE:
            update.removed = [value for value in existing if value.casefold() in requested_keys]
            update.preferences = [
                value for value in existing if value.casefold() not in requested_keys
            ]
            update.changed = bool(update.removed)
        else:
            update.preferences = list(requested)
            update.added = [value for value in requested if value.casefold() not in existing_keys]
            update.removed = [value for value in existing if value.casefold() not in requested_keys]
            update.changed = update.preferences != list(existing)
        return update

    @staticmethod
    def _load_for_write(session: Session, phone_number) -> Caller:
        key = phone_key(phone_number)
        caller = session.get(Caller, key)
        if caller is None:
            caller = Caller(phone_number=key)
        return caller

    @staticmethod
    def _stamp(caller: Caller, from_call: bool):
        now = utcnow()
        caller.updated_at = now
        if from_call:
            caller.last_called_at = now
