"""
Customize transaction.

The staged-edit overlay for one transaction UUID. Raw client values are kept
as received; only values that sanitize cleanly are ever staged, and reads
always return the sanitized form. Values loaded from the staging document
are sanitized lazily, because their settings may only be registered after
the document is loaded (dynamic settings).

Document payload layout::

    {"<setting id>": {"value": <raw value>, "user_id": "<actor uuid>"}}
"""

import uuid
from typing import Any, Dict, List, Optional

from fastapi import status as http_status

from src.engines.customize.errors import (
    STORAGE_ERROR,
    UNAUTHORIZED,
    CustomizeError,
    SettingValidationError,
)
from src.engines.customize.setting import MISSING, Setting, get_path
from src.engines.customize.setting_registry import SettingRegistry
from src.engines.customize.theme import Theme
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import TransactionStatusChangedEvent, TransactionUpdatedEvent
from src.kernel.models.customize_transaction import CustomizeTransactionPost, TransactionStatus
from src.kernel.models.event_log import EventType
from src.kernel.permissions.capabilities import CapabilityGate
from src.kernel.storage.document_store import TransactionDocumentStore
from src.kernel.storage.errors import StorageError
from src.kernel.storage.option_store import OptionStore
from src.logging_config import get_logger
from src.orchestration.state_machine import InvalidTransitionError, required_capabilities

logger = get_logger(__name__)

ENTITY_TYPE = "customize_transaction"


class CustomizeTransaction:
    """
    Pending values for one customize session.

    Usage:
        txn = CustomizeTransaction(uuid, documents=..., settings=..., options=..., gate=...)
        await txn.load()
        txn.set(registry.get("blogname"), "<b>Hi</b>")
        await txn.save(TransactionStatus.DRAFT)
    """

    def __init__(
        self,
        transaction_uuid: uuid.UUID,
        *,
        documents: TransactionDocumentStore,
        settings: SettingRegistry,
        options: OptionStore,
        gate: CapabilityGate,
        stylesheet: str,
        theme: Optional[Theme] = None,
        events: Optional[EventStore] = None,
    ):
        self.uuid = transaction_uuid
        self.documents = documents
        self.settings = settings
        self.options = options
        self.gate = gate
        self.stylesheet = stylesheet
        self.theme = theme
        self.events = events
        self.post: Optional[CustomizeTransactionPost] = None
        self.rejected: Dict[str, str] = {}
        self._raw: Dict[str, Dict[str, Any]] = {}
        self._sanitized: Dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"<CustomizeTransaction {self.uuid} status={self.status}>"

    async def load(self) -> Optional[CustomizeTransactionPost]:
        """Read the staging document, if one exists, and adopt its values."""
        self.post = await self.documents.get(self.uuid)
        self._raw = {}
        self._sanitized = {}
        if self.post is not None:
            for setting_id, entry in (self.post.payload or {}).items():
                if isinstance(entry, dict) and "value" in entry:
                    self._raw[setting_id] = dict(entry)
        return self.post

    @property
    def status(self) -> Optional[TransactionStatus]:
        if self.post is None:
            return None
        return TransactionStatus(self.post.status)

    @property
    def is_published(self) -> bool:
        return self.status == TransactionStatus.PUBLISH

    def setting_ids(self) -> List[str]:
        """Ids with a staged raw value, registered or not."""
        return list(self._raw)

    def has(self, setting_id: str) -> bool:
        return setting_id in self._raw

    def pending_value(self, setting: Setting) -> Any:
        """Sanitized staged value for the setting, or MISSING."""
        if setting.id in self._sanitized:
            return self._sanitized[setting.id]
        entry = self._raw.get(setting.id)
        if entry is None:
            return MISSING
        try:
            value = setting.sanitize(entry["value"])
        except SettingValidationError as exc:
            # Stored before a sanitizer tightened; treat as not staged
            self.rejected[setting.id] = exc.message
            return MISSING
        self._sanitized[setting.id] = value
        return value

    def get(self, setting: Setting, default: Any = None) -> Any:
        """
        Effective value for the setting in this transaction.

        Pending sanitized value, else the stored value (ignoring any preview
        override), else the setting default, else default.
        """
        value = self.pending_value(setting)
        if value is not MISSING:
            return value
        root = self.options.get_raw(setting.storage_key(self.stylesheet), MISSING)
        value = get_path(root, setting.storage_path())
        if value is not MISSING:
            return value
        if setting.default is not None:
            return setting.default
        return default

    def set(self, setting: Setting, raw: Any) -> bool:
        """
        Stage a raw value.

        A value that fails sanitization is not staged; the setting id is
        recorded in rejected and any earlier staged value is kept.

        Raises:
            InvalidTransitionError: If the transaction is already published
        """
        if self.is_published:
            raise InvalidTransitionError(TransactionStatus.PUBLISH.value, TransactionStatus.PUBLISH.value)
        try:
            value = setting.sanitize(raw)
        except SettingValidationError as exc:
            self.rejected[setting.id] = exc.message
            logger.debug(
                "Rejected setting value",
                extra={"setting_id": setting.id, "reason": exc.message},
            )
            return False
        self.rejected.pop(setting.id, None)
        self._raw[setting.id] = {
            "value": raw,
            "user_id": str(self.gate.actor_id) if self.gate.actor_id else None,
        }
        self._sanitized[setting.id] = value
        setting.dirty = True
        return True

    def data(self) -> Dict[str, Any]:
        """Sanitized pending values of every registered setting that has one."""
        values: Dict[str, Any] = {}
        for setting_id in self._raw:
            setting = self.settings.get(setting_id)
            if setting is None:
                continue
            value = self.pending_value(setting)
            if value is not MISSING:
                values[setting_id] = value
        return values

    def discard(self) -> None:
        """Drop pending values without persisting them."""
        self._raw.clear()
        self._sanitized.clear()
        self.rejected.clear()

    async def save(self, status: TransactionStatus = TransactionStatus.DRAFT) -> Dict[str, Any]:
        """
        Persist the transaction document and, when publishing, the values.

        On publish every sanitized value is written to durable storage
        unless the actor may not edit that setting; such settings are
        skipped. The document write and the value writes share the request's
        database transaction, so a storage failure leaves nothing behind.

        Returns:
            The sanitized pending values

        Raises:
            InvalidTransitionError: If the status change is not allowed
            CustomizeError: If the actor may not make the status change, or
                storage fails
        """
        from_status = self.status
        needed = required_capabilities(from_status, status)
        if not all(self.gate.can(cap) for cap in needed):
            raise CustomizeError(UNAUTHORIZED, http_status.HTTP_403_FORBIDDEN)

        values = self.data()
        saved: List[str] = []
        skipped: List[str] = []
        try:
            if status == TransactionStatus.PUBLISH:
                for setting_id, value in values.items():
                    setting = self.settings.get(setting_id)
                    if not setting.check_capabilities(self.gate, self.theme):
                        skipped.append(setting_id)
                        continue
                    await setting.save(self.options, self.stylesheet, value)
                    saved.append(setting_id)

            self.post = await self.documents.write(
                self.uuid,
                payload=self._raw,
                status=status,
                author_id=self.gate.actor_id,
                stylesheet=self.stylesheet,
            )
        except StorageError as exc:
            raise CustomizeError(
                STORAGE_ERROR,
                http_status.HTTP_500_INTERNAL_SERVER_ERROR,
                message=str(exc),
            ) from exc

        await self._log_save(from_status, status, values, saved, skipped)
        logger.info(
            "Saved customize transaction",
            extra={
                "status": status.value,
                "settings": len(values),
                "rejected": len(self.rejected),
                "skipped": len(skipped),
            },
        )
        return values

    async def _log_save(
        self,
        from_status: Optional[TransactionStatus],
        to_status: TransactionStatus,
        values: Dict[str, Any],
        saved: List[str],
        skipped: List[str],
    ) -> None:
        if self.events is None:
            return
        actor_id = self.gate.actor_id
        await self.events.log_from_model(
            EventType.TRANSACTION_UPDATED,
            ENTITY_TYPE,
            self.uuid,
            actor_id,
            TransactionUpdatedEvent(
                stylesheet=self.stylesheet,
                accepted_settings=sorted(values),
                rejected_settings=sorted(self.rejected),
            ),
        )
        if from_status != to_status:
            event_type = (
                EventType.TRANSACTION_PUBLISHED
                if to_status == TransactionStatus.PUBLISH
                else EventType.TRANSACTION_STATUS_CHANGED
            )
            await self.events.log_from_model(
                event_type,
                ENTITY_TYPE,
                self.uuid,
                actor_id,
                TransactionStatusChangedEvent(
                    from_status=from_status.value if from_status else None,
                    to_status=to_status.value,
                    saved_settings=saved,
                    skipped_settings=skipped,
                ),
            )
