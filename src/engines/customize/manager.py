"""
Customize session controller.

One CustomizeManager serves one request: it loads options and the
transaction, resolves the theme being previewed, runs registration, enters
preview for customize requests, and sequences the update and save
endpoints. Validation and sanitization live in the setting registry and the
transaction; this class only orders the gates and shapes responses.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.engines.customize.containers import ActiveTree, ContainerRegistry
from src.engines.customize.core_controls import register_core_controls
from src.engines.customize.errors import (
    BAD_METHOD,
    BAD_NONCE,
    CUSTOMIZE_NOT_ALLOWED,
    INVALID_NONCE,
    INVALID_TRANSACTION_UUID,
    MISSING_CUSTOMIZED_JSON,
    NOT_PREVIEW,
    THEME_NOT_ALLOWED,
    TRANSACTION_PUBLISHED,
    UNAUTHORIZED,
    CustomizeError,
)
from src.engines.customize.hooks import REGISTER, SAVE, SAVE_AFTER, SAVE_RESPONSE, CustomizeHooks
from src.engines.customize.preview import PreviewContext, PreviewEngine
from src.engines.customize.setting import Setting
from src.engines.customize.setting_registry import (
    SettingRegistry,
    SettingResolver,
    widget_setting_resolver,
)
from src.engines.customize.theme import Theme, ThemeRegistry, get_theme_registry
from src.engines.customize.transaction import CustomizeTransaction
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import ThemeSwitchedEvent
from src.kernel.identity.nonce import NonceManager, save_action, update_action
from src.kernel.models.customize_transaction import TransactionStatus
from src.kernel.models.event_log import EventType
from src.kernel.models.user import User
from src.kernel.permissions.capabilities import Capability, CapabilityGate
from src.kernel.storage.document_store import TransactionDocumentStore
from src.kernel.storage.option_store import OptionStore
from src.logging_config import get_logger, transaction_uuid_var

logger = get_logger(__name__)


@dataclass
class CustomizeRequest:
    """The parts of an HTTP request the customize session reads."""

    method: str = "GET"
    transaction_uuid: Optional[str] = None
    nonce: Optional[str] = None
    customized: Optional[Dict[str, Any]] = None
    theme: Optional[str] = None
    wp_customize: bool = False
    messenger_channel: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def parse_transaction_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    """
    Parse a client-supplied transaction UUID. Empty means "none supplied".

    Raises:
        CustomizeError: invalid_customize_transaction_uuid when malformed
    """
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise CustomizeError(INVALID_TRANSACTION_UUID) from None


class CustomizeManager:
    """
    Orchestrates one customize session.

    Usage:
        manager = CustomizeManager(session, user, CustomizeRequest(...))
        await manager.setup()
        response = await manager.update_transaction()
    """

    def __init__(
        self,
        session: AsyncSession,
        actor: Optional[User],
        request: CustomizeRequest,
        *,
        app_settings: Optional[Settings] = None,
        themes: Optional[ThemeRegistry] = None,
        nonces: Optional[NonceManager] = None,
        hooks: Optional[CustomizeHooks] = None,
        resolvers: Iterable[SettingResolver] = (),
    ):
        self.session = session
        self.actor = actor
        self.request = request
        self.config = app_settings or get_settings()
        self.gate = CapabilityGate(actor)
        self.themes = themes or get_theme_registry()
        self.nonces = nonces or NonceManager()
        self.hooks = hooks or CustomizeHooks()

        self.preview_context = PreviewContext()
        self.preview = PreviewEngine(self.preview_context)
        self.options = OptionStore(session, read_filters=self.preview_context)
        self.documents = TransactionDocumentStore(session)
        self.events = EventStore(session)
        self.settings = SettingRegistry([widget_setting_resolver, *resolvers])
        self.containers = ContainerRegistry()

        self.messenger_channel = request.messenger_channel
        self.theme: Optional[Theme] = None
        self.original_stylesheet: Optional[str] = None
        self.transaction: Optional[CustomizeTransaction] = None

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """
        Load state and authorize the session.

        Raises:
            CustomizeError: If the actor may not customize or the requested
                theme cannot be previewed
        """
        await self.options.load()
        transaction_uuid = parse_transaction_uuid(self.request.transaction_uuid) or uuid.uuid4()
        transaction_uuid_var.set(str(transaction_uuid))

        self.original_stylesheet = self.options.get_raw("stylesheet") or self.config.default_stylesheet
        requested = self.request.theme or self.original_stylesheet
        self.theme = self.themes.get(requested)
        if self.theme is None:
            raise CustomizeError(THEME_NOT_ALLOWED, message=f"Unknown theme {requested}")

        self.transaction = CustomizeTransaction(
            transaction_uuid,
            documents=self.documents,
            settings=self.settings,
            options=self.options,
            gate=self.gate,
            stylesheet=self.theme.stylesheet,
            theme=self.theme,
            events=self.events,
        )
        await self.transaction.load()

        if self.actor is None:
            # Anonymous visitors may only view an existing transaction
            if not (self.config.customize_anonymous_preview_allowed and self.transaction.post is not None):
                raise CustomizeError(UNAUTHORIZED, http_status.HTTP_401_UNAUTHORIZED)
        elif not self.gate.can(Capability.CUSTOMIZE):
            raise CustomizeError(CUSTOMIZE_NOT_ALLOWED, http_status.HTTP_403_FORBIDDEN)

        if not self.is_theme_active():
            if not self.gate.can(Capability.SWITCH_THEMES):
                raise CustomizeError(THEME_NOT_ALLOWED, http_status.HTTP_403_FORBIDDEN)
            if self.theme.errors or not self.theme.allowed:
                raise CustomizeError(THEME_NOT_ALLOWED, http_status.HTTP_403_FORBIDDEN)

        await self.register()

        if self.request.wp_customize:
            self.start_previewing_theme()

        logger.debug(
            "Customize session ready",
            extra={
                "stylesheet": self.stylesheet,
                "settings": len(self.settings),
                "previewing": self.is_preview(),
            },
        )

    async def register(self) -> None:
        """Core registration, then extension hooks, then dynamic settings."""
        register_core_controls(self)
        await self.hooks.run(REGISTER, self)
        self.add_dynamic_settings(self.transaction.setting_ids())

    def add_dynamic_settings(self, setting_ids: Iterable[str]) -> List[Setting]:
        """Materialise settings for unknown ids; covers them if preview is on."""
        added = self.settings.add_dynamic_settings(setting_ids)
        if added and self.preview.is_active:
            self.preview.extend(added)
        return added

    # ------------------------------------------------------------------
    # Theme preview
    # ------------------------------------------------------------------

    @property
    def stylesheet(self) -> str:
        return self.theme.stylesheet

    @property
    def template(self) -> str:
        return self.theme.template

    def is_theme_active(self) -> bool:
        return self.theme is not None and self.theme.stylesheet == self.original_stylesheet

    def is_preview(self) -> bool:
        return self.preview.is_active

    def start_previewing_theme(self) -> None:
        if self.preview.is_active:
            return
        self.preview.enter(
            self.settings,
            self.transaction,
            self.stylesheet,
            theme=None if self.is_theme_active() else self.theme,
        )

    def stop_previewing_theme(self) -> None:
        self.preview.leave()

    async def switch_theme(self) -> None:
        """Activate the previewed theme for real."""
        previous = self.original_stylesheet
        await self.options.update("stylesheet", self.theme.stylesheet)
        await self.options.update("template", self.theme.template)
        await self.options.update("current_theme", self.theme.name)
        await self.options.update("theme_switched_via_customizer", True)
        self.original_stylesheet = self.theme.stylesheet
        await self.events.log_from_model(
            EventType.THEME_SWITCHED,
            "theme",
            self.theme.stylesheet,
            self.gate.actor_id,
            ThemeSwitchedEvent(from_stylesheet=previous, to_stylesheet=self.theme.stylesheet),
        )
        logger.info(
            "Switched theme via customizer",
            extra={"from_stylesheet": previous, "to_stylesheet": self.theme.stylesheet},
        )

    # ------------------------------------------------------------------
    # Read surface for rendering
    # ------------------------------------------------------------------

    def get_setting_value(self, setting_id: str, default: Any = None) -> Any:
        """Current effective value; previewed while preview is active."""
        setting = self.settings.get(setting_id)
        if setting is None:
            return default
        return setting.read(self.options, self.stylesheet)

    def get_active_tree(self) -> ActiveTree:
        return self.containers.prepare(self.gate, self.theme, self.settings)

    def get_nonces(self) -> Dict[str, str]:
        if not self.gate.can(Capability.CUSTOMIZE):
            return {}
        actor_id = self.gate.actor_id
        return {
            "update": self.nonces.create(update_action(self.stylesheet), actor_id),
            "save": self.nonces.create(save_action(self.stylesheet), actor_id),
        }

    def get_preview_persisted_query_vars(self) -> Dict[str, Any]:
        return {
            "customize_messenger_channel": self.messenger_channel,
            "wp_customize": "on",
            "customize_transaction_uuid": str(self.transaction.uuid),
            "theme": self.stylesheet,
        }

    def preview_settings(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Bootstrap data for the preview frame."""
        tree = self.get_active_tree()
        active_panels = set(tree.panel_ids)
        active_sections = set(tree.section_ids)
        active_controls = set(tree.control_ids)
        data: Dict[str, Any] = {
            "values": {
                setting.id: setting.js_value(setting.read(self.options, self.stylesheet))
                for setting in self.settings
            },
            "channel": self.messenger_channel,
            "transaction": {"uuid": str(self.transaction.uuid)},
            "theme": self.stylesheet,
            "nonce": self.get_nonces(),
            "activePanels": {pid: pid in active_panels for pid in self.containers.panels},
            "activeSections": {sid: sid in active_sections for sid in self.containers.sections},
            "activeControls": {cid: cid in active_controls for cid in self.containers.controls},
            "persisted_query_vars": self.get_preview_persisted_query_vars(),
        }
        if extra:
            data.update(extra)
        return data

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def _authorize_transaction(self) -> None:
        if not self.gate.can_edit_transaction(self.transaction.post):
            raise CustomizeError(UNAUTHORIZED, http_status.HTTP_403_FORBIDDEN)
        if self.transaction.is_published:
            raise CustomizeError(TRANSACTION_PUBLISHED)

    async def update_transaction(self) -> Dict[str, Any]:
        """
        Stage a batch of values into the transaction document.

        Raises:
            CustomizeError: bad_nonce, bad_method, customize_not_allowed,
                invalid_customize_transaction_uuid, missing_customized_json,
                unauthorized or transaction_published; nothing is written
        """
        request = self.request
        if not self.nonces.verify(request.nonce, update_action(self.stylesheet), self.gate.actor_id):
            raise CustomizeError(BAD_NONCE)
        if request.method.upper() != "POST":
            raise CustomizeError(BAD_METHOD, http_status.HTTP_405_METHOD_NOT_ALLOWED)
        if not self.gate.can(Capability.CUSTOMIZE):
            raise CustomizeError(CUSTOMIZE_NOT_ALLOWED, http_status.HTTP_403_FORBIDDEN)
        if not request.transaction_uuid:
            raise CustomizeError(INVALID_TRANSACTION_UUID)
        if not request.customized:
            raise CustomizeError(MISSING_CUSTOMIZED_JSON)
        self._authorize_transaction()

        customized = request.customized
        self.add_dynamic_settings([sid for sid in customized if sid not in self.settings])

        for setting in self.settings:
            if setting.id not in customized:
                continue
            if not setting.check_capabilities(self.gate, self.theme):
                logger.debug("Skipped setting without capability", extra={"setting_id": setting.id})
                continue
            self.transaction.set(setting, customized[setting.id])

        values = await self.transaction.save(TransactionStatus.DRAFT)
        logger.info(
            "Updated customize transaction",
            extra={"accepted": len(values), "rejected": len(self.transaction.rejected)},
        )
        return {
            "transaction_uuid": str(self.transaction.uuid),
            "transaction_settings": values,
            "rejected_settings": dict(self.transaction.rejected),
        }

    async def save(self) -> Dict[str, Any]:
        """
        Publish the transaction, or submit it for review when the actor
        cannot publish.

        Raises:
            CustomizeError: not_preview, invalid_nonce, unauthorized or
                transaction_published
        """
        if not self.is_preview():
            raise CustomizeError(NOT_PREVIEW)
        if not self.nonces.verify(self.request.nonce, save_action(self.stylesheet), self.gate.actor_id):
            raise CustomizeError(INVALID_NONCE, http_status.HTTP_403_FORBIDDEN)
        self._authorize_transaction()

        if not self.is_theme_active():
            # Theme switching must see the real options, not the previewed ones
            self.stop_previewing_theme()
            await self.switch_theme()
            self.start_previewing_theme()

        await self.hooks.run(SAVE, self)

        if self.gate.can(Capability.PUBLISH_CUSTOMIZE_TRANSACTIONS):
            status = TransactionStatus.PUBLISH
        else:
            status = TransactionStatus.PENDING
        values = await self.transaction.save(status)
        if status == TransactionStatus.PUBLISH:
            self.transaction.discard()

        await self.hooks.run(SAVE_AFTER, self)

        response = {
            "transaction_uuid": str(self.transaction.uuid),
            "transaction_status": status.value,
            "transaction_settings": values,
        }
        return await self.hooks.filter(SAVE_RESPONSE, response, self)
