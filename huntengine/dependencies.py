"""Engine component providers — lazy singletons shared by the API and callers."""

from fastapi import Header, HTTPException, status

from .config import HuntEngineConfig, get_config
from .database import get_session_factory

_config_instance: HuntEngineConfig | None = None
_indicator_store = None
_hunt_job_store = None
_match_store = None
_inventory_source = None
_log_source = None
_quick_search = None
_hunt_executor = None


def get_app_config() -> HuntEngineConfig:
    """Get the application config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = get_config()
    return _config_instance


def _session_factory():
    return get_session_factory(get_app_config())


async def get_organization_id(
    x_organization_id: str | None = Header(default=None),
) -> str:
    """Organization scope for the request, passed explicitly by the front end."""
    if not x_organization_id or not x_organization_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-Id header is required",
        )
    return x_organization_id.strip()


def get_indicator_store():
    """Get the Indicator Store singleton."""
    global _indicator_store
    if _indicator_store is None:
        from .intel.indicator_store import IndicatorStore
        _indicator_store = IndicatorStore(_session_factory())
    return _indicator_store


def get_hunt_job_store():
    """Get the Hunt Job Store singleton."""
    global _hunt_job_store
    if _hunt_job_store is None:
        from .engine.hunt_jobs import HuntJobStore
        _hunt_job_store = HuntJobStore(_session_factory())
    return _hunt_job_store


def get_match_store():
    """Get the Match Store singleton."""
    global _match_store
    if _match_store is None:
        from .engine.match_store import MatchStore
        _match_store = MatchStore(_session_factory())
    return _match_store


def get_inventory_source():
    """Get the Inventory Source singleton."""
    global _inventory_source
    if _inventory_source is None:
        from .sources.inventory import InventorySource
        config = get_app_config()
        _inventory_source = InventorySource(
            _session_factory(),
            result_cap=config.inventory_result_cap,
            timeout_seconds=config.source_timeout_seconds,
        )
    return _inventory_source


def get_log_source():
    """Get the Log Source singleton."""
    global _log_source
    if _log_source is None:
        from .sources.event_log import LogSource
        config = get_app_config()
        _log_source = LogSource(
            _session_factory(),
            result_cap=config.log_result_cap,
            timeout_seconds=config.source_timeout_seconds,
        )
    return _log_source


def get_quick_search():
    """Get the Quick Search singleton."""
    global _quick_search
    if _quick_search is None:
        from .engine.quick_search import QuickSearch
        _quick_search = QuickSearch(
            [get_inventory_source(), get_log_source()],
            result_cap=get_app_config().quick_search_result_cap,
        )
    return _quick_search


def get_hunt_executor():
    """Get the Hunt Executor singleton."""
    global _hunt_executor
    if _hunt_executor is None:
        from .engine.hunt_executor import HuntExecutor
        _hunt_executor = HuntExecutor(
            get_indicator_store(),
            get_hunt_job_store(),
            get_match_store(),
            [get_inventory_source(), get_log_source()],
            max_concurrency=get_app_config().hunt_max_concurrency,
        )
    return _hunt_executor
