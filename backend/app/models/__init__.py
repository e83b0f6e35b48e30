from ..core.database import Base, async_engine, get_db
from .integration import Integration, IntegrationProvider
from .synced import SyncedContact, SyncedOrder, SyncedProduct, SyncedDeal, SyncedCompany
from .events import (
    WebhookEvent,
    WorkflowTrigger,
    OrderEvent,
    Notification,
    InventoryLevel,
    KnowledgeUpdate,
    SyncTask,
)

__all__ = [
    "Base",
    "async_engine",
    "get_db",
    "Integration",
    "IntegrationProvider",
    "SyncedContact",
    "SyncedOrder",
    "SyncedProduct",
    "SyncedDeal",
    "SyncedCompany",
    "WebhookEvent",
    "WorkflowTrigger",
    "OrderEvent",
    "Notification",
    "InventoryLevel",
    "KnowledgeUpdate",
    "SyncTask",
]
