from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .auth.clients import ClientSessions
from .auth.roles import RoleResolver
from .core.constants import DEFAULT_CLIENT_IDLE_SECONDS, DEFAULT_ROLE_RETRY_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .identity.memory_provider import InMemoryIdentityProvider
from .identity.mysql_provider import MySQLIdentityProvider
from .identity.provider import IdentityProvider
from .reports.backup import BackupService
from .reports.service import ReportService
from .requests.service import RequestLifecycleManager
from .roster.service import RosterService
from .schedules.service import ScheduleService
from .staff.service import StaffService
from .storage.base import RecordStore
from .storage.blobs import DocumentUploader, LocalBlobStore
from .storage.memory_store import InMemoryRecordStore
from .storage.mysql_store import MySQLRecordStore

STORE_BACKENDS = {"mysql", "memory"}


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    store: RecordStore
    identity_provider: IdentityProvider
    blobs: LocalBlobStore

    role_resolver: RoleResolver
    clients: ClientSessions
    uploader: DocumentUploader

    request_manager: RequestLifecycleManager
    roster_service: RosterService
    staff_service: StaffService
    schedule_service: ScheduleService
    report_service: ReportService
    backup_service: BackupService


def build_container(
    *,
    db_config: dict,
    store_backend: str = "mysql",
    role_retry_seconds: float = DEFAULT_ROLE_RETRY_SECONDS,
    client_idle_seconds: float = DEFAULT_CLIENT_IDLE_SECONDS,
    upload_dir: str = "uploads",
    school_name: str = "School",
) -> Container:
    if store_backend not in STORE_BACKENDS:
        raise ValueError(f"Unknown STORE_BACKEND {store_backend!r}; expected one of {sorted(STORE_BACKENDS)}")

    conn: Optional[DatabaseConnection] = None
    store: RecordStore
    identity_provider: IdentityProvider
    if store_backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        store = MySQLRecordStore(conn)
        identity_provider = MySQLIdentityProvider(conn)
    else:
        store = InMemoryRecordStore()
        identity_provider = InMemoryIdentityProvider()

    blobs = LocalBlobStore(upload_dir)

    role_resolver = RoleResolver(store, retry_delay=role_retry_seconds)
    clients = ClientSessions(identity_provider, role_resolver, idle_timeout=client_idle_seconds)
    uploader = DocumentUploader(blobs)

    request_manager = RequestLifecycleManager(store)
    roster_service = RosterService(store)
    staff_service = StaffService(store, identity_provider)
    schedule_service = ScheduleService(store)
    report_service = ReportService(request_manager, roster_service, school_name=school_name)
    backup_service = BackupService(store)

    return Container(
        conn=conn,
        store=store,
        identity_provider=identity_provider,
        blobs=blobs,
        role_resolver=role_resolver,
        clients=clients,
        uploader=uploader,
        request_manager=request_manager,
        roster_service=roster_service,
        staff_service=staff_service,
        schedule_service=schedule_service,
        report_service=report_service,
        backup_service=backup_service,
    )
