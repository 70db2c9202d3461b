from protean.domain import Domain
from sqlalchemy import create_engine

from commerce.config import get_settings
from commerce.stock.sql_adapter import SqlStockGuard

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _load_daos(domain: Domain, provider_name: str) -> None:
    """Touch every repository DAO so its table is registered with SQLAlchemy metadata."""
    for registry in (domain.registry.aggregates, domain.registry.entities):
        for _, record in registry.items():
            if record.cls.meta_.provider == provider_name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain):
    """Create the domain tables, and the stock table when a stock database is configured."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in _SQL_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _load_daos(domain, provider.name)
                provider._metadata.create_all(engine)

    database_url = get_settings().database_url
    if database_url:
        SqlStockGuard(database_url).create_table()


def drop_db(domain: Domain):
    """Drop the domain tables and the stock table."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in _SQL_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)

    database_url = get_settings().database_url
    if database_url:
        SqlStockGuard(database_url).drop_table()
