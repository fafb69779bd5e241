"""FastAPI dependency injection."""

from sqlalchemy.ext.asyncio import create_async_engine

from sitescore.config import settings
from sitescore.data.cache import QueryCache
from sitescore.data.warehouse import WarehouseClient

engine = create_async_engine(settings.warehouse_url, echo=settings.debug, pool_pre_ping=True)
query_cache = QueryCache()


def get_warehouse() -> WarehouseClient:
    return WarehouseClient(engine, cache=query_cache)
