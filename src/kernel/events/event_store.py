"""
Append-only audit log of customize activity.

Events are added to the same session as the change they describe, so a
transaction save and its events commit (or roll back) together. Each event
records the request id from the logging context for correlation with logs.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import select, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.event_log import EventLog, EventType
from src.logging_config import get_request_id


class EventStore:
    """
    Writes and reads the immutable event log.

    Usage:
        events = EventStore(session)
        await events.log(
            event_type=EventType.TRANSACTION_UPDATED,
            entity_type="customize_transaction",
            entity_id=transaction.uuid,
            user_id=actor.id,
            payload={"accepted_settings": ["blogname"]},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: Union[uuid.UUID, str],
        user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """
        Append an event.

        Args:
            event_type: The type of event
            entity_type: customize_transaction or theme
            entity_id: Transaction UUID, or a stylesheet for theme events
            user_id: The acting user (None for anonymous or system events)
            payload: Additional event data

        Returns:
            The pending EventLog row; the caller's commit persists it
        """
        event = EventLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=user_id,
            payload=self._serialize_payload(payload) if payload else {},
            request_id=get_request_id(),
        )
        self.session.add(event)
        return event

    async def log_from_model(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: Union[uuid.UUID, str],
        user_id: Optional[uuid.UUID],
        payload_model: BaseModel,
    ) -> EventLog:
        """Log an event using a Pydantic model as payload."""
        return await self.log(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            payload=payload_model.model_dump(mode="json"),
        )

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: Union[uuid.UUID, str],
        event_types: Optional[List[EventType]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[EventLog]:
        """Events for one entity, newest first."""
        query = select(EventLog).where(
            and_(
                EventLog.entity_type == entity_type,
                EventLog.entity_id == str(entity_id),
            )
        )
        if event_types:
            query = query.where(EventLog.event_type.in_(event_types))

        query = query.order_by(desc(EventLog.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        result = {}
        for key, value in payload.items():
            if isinstance(value, uuid.UUID):
                result[key] = str(value)
            elif isinstance(value, datetime):
                result[key] = value.isoformat()
            elif isinstance(value, dict):
                result[key] = self._serialize_payload(value)
            elif isinstance(value, (list, tuple, set)):
                result[key] = [str(v) if isinstance(v, uuid.UUID) else v for v in value]
            else:
                result[key] = value
        return result
