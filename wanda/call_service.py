import logging
from typing import Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from wanda.models import CallRecord, CallStatus, utcnow

logger = logging.getLogger(__name__)

MAX_CACHED_RESULTS = 5


class CallService:
    """Per-call session records in the `calls` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, call_id: str) -> Optional[CallRecord]:
        with Session(self.engine) as session:
            return session.get(CallRecord, call_id)

    def upsert(self, call_id: str, **fields) -> CallRecord:
        """Merges `fields` into the call record, creating it if needed."""
        with Session(self.engine) as session:
            record = session.get(CallRecord, call_id)
            if record is None:
                record = CallRecord(id=call_id)
            for name, value in fields.items():
                if name not in CallRecord.model_fields:
                    raise AttributeError(f"CallRecord has no field '{name}'")
                setattr(record, name, value)
            record.updated_at = utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return record

    def update_status(self, call_id: str, status: str) -> bool:
        """
        Moves the call forward to `status`. Returns False when the update is
        ignored: the call already ended, the status would move backwards, or
        the status is not one we track.
        """
        try:
            new_status = CallStatus(status)
        except ValueError:
            logger.info(f"Ignoring untracked status '{status}' for call {call_id}")
            return False

        with Session(self.engine) as session:
            record = session.get(CallRecord, call_id)
            if record is None:
                record = CallRecord(id=call_id, status=new_status.value)
            else:
                current = CallStatus(record.status)
                if current is CallStatus.ENDED or new_status.rank < current.rank:
                    logger.info(
                        f"Ignoring status '{new_status.value}' for call {call_id} "
                        f"(currently '{current.value}')"
                    )
                    return False
                record.status = new_status.value
            record.updated_at = utcnow()
            session.add(record)
            session.commit()

        logger.info(f"Updated call status to {new_status.value} for call {call_id}")
        return True

    def record_search_results(self, call_id: str, results: List[Dict]) -> List[Dict]:
        cached = [
            {
                "name": result.get("name", ""),
                "address": result.get("address", ""),
                "placeId": result.get("placeId", ""),
            }
            for result in results[:MAX_CACHED_RESULTS]
        ]
        self.upsert(call_id, last_search_results=cached)
        logger.info(f"Cached {len(cached)} search results for call {call_id}")
        return cached

    def get_search_results(self, call_id: str) -> Optional[List[Dict]]:
        record = self.get(call_id)
        if record is None or not record.last_search_results:
            return None
        return list(record.last_search_results)

    def has_completed_call(self, phone_number: str, exclude_call_id: Optional[str] = None) -> bool:
        with Session(self.engine) as session:
            statement = select(CallRecord).where(
                CallRecord.caller_phone_number == phone_number,
                CallRecord.status == CallStatus.ENDED.value,
            )
            if exclude_call_id:
                statement = statement.where(CallRecord.id != exclude_call_id)
            return session.exec(statement).first() is not None
