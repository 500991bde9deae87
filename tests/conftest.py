"""Shared test fixtures — temp-file SQLite database and a seeded endpoint fleet."""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from huntengine.models import Base, Endpoint, EventLogRecord, InventoryRecord

ORG = "org-1"
OTHER_ORG = "org-2"

SHA256_EVIL = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
SHA1_REPORT = "da39a3ee5e6b4b0d3255bfef95601890afd80709"
MD5_POWERSHELL = "d41d8cd98f00b204e9800998ecf8427e"


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine on a throwaway SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hunt.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def fleet(session_factory):
    """Seed endpoints, file inventory and event logs for two organizations.

    org-1: ws-alpha (1), ws-bravo (2), ws-charlie (3); org-2: srv-other (4).
    SHA256_EVIL is installed on ws-alpha and ws-bravo in org-1 and on
    srv-other in org-2. No event log mentions the hash.
    """
    async with session_factory() as session:
        session.add_all([
            Endpoint(id=1, organization_id=ORG, hostname="ws-alpha", is_online=True),
            Endpoint(id=2, organization_id=ORG, hostname="ws-bravo", is_online=False),
            Endpoint(id=3, organization_id=ORG, hostname="ws-charlie", is_online=True),
            Endpoint(id=4, organization_id=OTHER_ORG, hostname="srv-other", is_online=True),
        ])
        await session.flush()
        session.add_all([
            InventoryRecord(
                organization_id=ORG, endpoint_id=1,
                file_hash=SHA256_EVIL.upper(),
                file_path=r"C:\Users\Public\evil.exe", file_name="evil.exe",
            ),
            InventoryRecord(
                organization_id=ORG, endpoint_id=2,
                file_hash=SHA256_EVIL,
                file_path=r"C:\Temp\evil.exe", file_name="evil.exe",
            ),
            InventoryRecord(
                organization_id=ORG, endpoint_id=1,
                file_hash=MD5_POWERSHELL,
                file_path=r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe",
                file_name="powershell.exe",
            ),
            InventoryRecord(
                organization_id=ORG, endpoint_id=3,
                file_hash=SHA1_REPORT,
                file_path="/usr/local/bin/report_2024.sh", file_name="report_2024.sh",
            ),
            InventoryRecord(
                organization_id=ORG, endpoint_id=2,
                file_hash=None,
                file_path="/opt/tools/reportX2024.sh", file_name="reportX2024.sh",
            ),
            InventoryRecord(
                organization_id=OTHER_ORG, endpoint_id=4,
                file_hash=SHA256_EVIL,
                file_path="/srv/evil.exe", file_name="evil.exe",
            ),
        ])
        session.add_all([
            EventLogRecord(
                endpoint_id=1,
                message="Process powershell.exe started with encoded command",
                event_time=datetime(2024, 5, 1, 10, 0, 0),
                log_source="Security", event_id=4688,
            ),
            EventLogRecord(
                endpoint_id=3,
                message="User launched POWERSHELL.EXE -nop -w hidden",
                event_time=datetime(2024, 5, 1, 11, 0, 0),
                log_source="Security", event_id=4688,
            ),
            EventLogRecord(
                endpoint_id=2,
                message="Service svchost restarted unexpectedly",
                event_time=datetime(2024, 5, 1, 12, 0, 0),
                log_source="System", event_id=7031,
            ),
            EventLogRecord(
                endpoint_id=2,
                message=r"Defender quarantined C:\Temp\evil.exe",
                event_time=datetime(2024, 5, 1, 13, 0, 0),
                log_source="Windows Defender", event_id=1117,
            ),
            EventLogRecord(
                endpoint_id=4,
                message="Process powershell.exe started",
                event_time=datetime(2024, 5, 1, 14, 0, 0),
                log_source="Security", event_id=4688,
            ),
        ])
        await session.commit()
    return session_factory
