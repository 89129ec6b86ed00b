"""ERP synchronisation: orchestrated sync runs, sync logs and the cron retry sweeper."""

from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.service import ErpSyncService
from modules.erp.sweeper import CronRetrySweeper

__all__ = ["CronRetrySweeper", "ErpSyncService", "SyncOrchestrator"]
