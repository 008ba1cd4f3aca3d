import functools
import threading

from protean.domain import Domain
from sqlalchemy import create_engine

# Provider name -> write lock held for a whole command transaction
_store_locks = {}


def store_lock(provider_name="default"):
    return _store_locks.setdefault(provider_name, threading.RLock())


def serialized(fn):
    """Run a command handler, and the unit of work ``@handle`` opens around it,
    while holding the store's write lock. Stack it above ``@handle``.

    Stock is checked and reserved inside the transaction that creates the
    order, so no other writer commits between the check and the commit.
    The in-memory provider commits whole snapshots, so every command handler
    takes the lock, not only the ones that touch stock.
    """

    @functools.wraps(fn)
    def wrapper(instance, command):
        with store_lock():
            return fn(instance, command)

    return wrapper


def _register_models(domain: Domain, provider_name: str) -> None:
    """Touch every repository's DAO so its SQLAlchemy model joins the provider's metadata."""
    for _, aggregate_record in domain.registry.aggregates.items():
        if aggregate_record.cls.meta_.provider == provider_name:
            domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

    for _, entity_record in domain.registry.entities.items():
        if entity_record.cls.meta_.provider == provider_name:
            domain.repository_for(entity_record.cls)._dao  # noqa: B018

    for _, projection_record in domain.registry.projections.items():
        if projection_record.cls.meta_.provider == provider_name:
            domain.repository_for(projection_record.cls)._dao  # noqa: B018


def setup_db(domain: Domain):
    """Create tables for carts, orders, stock records and coupons on RDBMS providers."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                _register_models(domain, provider.name)
                provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
