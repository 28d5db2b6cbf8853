# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire the gateway, repository and services.
"""

from schedule_sync.core.retry import RetryPolicy
from schedule_sync.repositories.schedule_repository import ScheduleRepository
from schedule_sync.services.deletion_coordinator import DeletionCoordinator
from schedule_sync.services.dependency_scanner import DependencyScanner
from schedule_sync.services.pagerduty_client import PagerDutyClient
from schedule_sync.services.schedule_service import ScheduleService

# ── Singleton instances ──
_retry_policy = RetryPolicy()
_pagerduty_client = PagerDutyClient()
_schedule_repo = ScheduleRepository()

_dependency_scanner = DependencyScanner(gateway=_pagerduty_client, retry=_retry_policy)
_deletion_coordinator = DeletionCoordinator(
    gateway=_pagerduty_client,
    scanner=_dependency_scanner,
    retry=_retry_policy,
)
_schedule_service = ScheduleService(
    gateway=_pagerduty_client,
    schedule_repo=_schedule_repo,
    coordinator=_deletion_coordinator,
    retry=_retry_policy,
)


def close_clients() -> None:
    _pagerduty_client.close()


# ── FastAPI dependency functions ──
def get_schedule_service() -> ScheduleService:
    return _schedule_service


def get_schedule_repo() -> ScheduleRepository:
    return _schedule_repo
