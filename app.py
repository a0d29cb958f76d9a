"""
Composition root.

Builds the store, services and event wiring, then either the FastAPI app or
the reminder scanner. Infrastructure secrets come from Vault.

Usage:
    uvicorn app:app_from_env --factory     # HTTP API
    python -m app scanner                  # reminder scanner loop
"""

import logging
import sys

from fastapi import FastAPI

from api import (
    ActorContextMiddleware,
    RequestIDMiddleware,
    create_actions_router,
    create_data_router,
    register_error_handlers,
)
from clients import (
    PostgresClient,
    TelegramClient,
    ValkeyClient,
    get_database_url,
    get_telegram_bot_token,
    get_valkey_url,
)
from core.config import CRMConfig
from core.event_bus import EventBus
from core.handlers import register_notification_handlers
from core.scanner import TaskReminderScanner
from core.services.activity_service import ActivityService
from core.services.deal_service import DealService
from core.services.export_service import ExportService
from core.services.import_service import ImportService
from core.services.lead_service import LeadService
from core.services.member_service import MemberService
from core.services.notification_service import NotificationChannel, NotificationService
from core.services.task_service import TaskService
from core.store import EntityStore, PostgresStore

logger = logging.getLogger(__name__)


def build_services(
    store: EntityStore,
    config: CRMConfig,
    channel: NotificationChannel | None = None,
) -> dict:
    """
    Wire services over one store, with notification handlers subscribed.

    Returns:
        Services keyed by domain name, plus the event bus under 'event_bus'
    """
    event_bus = EventBus()
    notification_service = NotificationService(store, config, channel)
    register_notification_handlers(event_bus, notification_service)

    members = MemberService(store)
    leads = LeadService(store, members, event_bus)
    tasks = TaskService(store, members, event_bus)

    return {
        "event_bus": event_bus,
        "member": members,
        "lead": leads,
        "task": tasks,
        "deal": DealService(store, members, leads, event_bus),
        "activity": ActivityService(store, leads),
        "notification": notification_service,
        "import": ImportService(leads, members),
        "export": ExportService(leads, members),
    }


def create_app(services: dict) -> FastAPI:
    """FastAPI app over already-built services."""
    app = FastAPI(title="Realty CRM")

    register_error_handlers(app)
    app.add_middleware(ActorContextMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def _production_services(config: CRMConfig) -> dict:
    store = PostgresStore(PostgresClient(get_database_url()))
    channel = TelegramClient(
        get_telegram_bot_token(),
        timeout_seconds=config.dispatch_timeout_seconds,
    )
    return build_services(store, config, channel)


def app_from_env() -> FastAPI:
    """App factory for uvicorn, backed by PostgreSQL and Telegram."""
    config = CRMConfig.from_env()
    return create_app(_production_services(config))


def run_scanner() -> None:
    """Entry point for the reminder scanner (blocking)."""
    config = CRMConfig.from_env()
    services = _production_services(config)
    lock = ValkeyClient(get_valkey_url())

    scanner = TaskReminderScanner(
        services["task"],
        services["notification"],
        config,
        lock=lock,
    )
    try:
        scanner.start()
    finally:
        lock.close()
        PostgresClient.close_all_pools()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if len(sys.argv) > 1 and sys.argv[1] == "scanner":
        run_scanner()
    else:
        logger.error("Usage: python -m app scanner")
        sys.exit(2)
