"""
Persistence for whitelisted client addresses.

Grants live in a single table, ``<prefix>ips``, with a ``username`` and an
``ip`` column. Every statement is built with SQLAlchemy expressions, so
addresses and usernames only ever reach the database as bound parameters.

Newly created tables carry a unique index on ``ip``. Two concurrent
authorizations for the same unseen address therefore cannot both write a
row: the loser gets :class:`DuplicateGrant`. Tables that already exist are
left untouched by :meth:`WhitelistStore.initialize`.
"""

import logging
from typing import Any, Dict

from sqlalchemy import Column, Index, MetaData, String, Table, Text, \
    create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..domain import Grant

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    """The whitelist database could not be reached, or a statement failed."""


class DuplicateGrant(RuntimeError):
    """A grant for the address was written by someone else first."""


def create_db_engine(url: str, timeout: float = 5.0) -> Engine:
    """Create an engine whose connects and queries are bounded by ``timeout``."""
    db_url = make_url(url)
    kwargs: Dict[str, Any] = {'pool_pre_ping': True}
    if db_url.get_backend_name() == 'sqlite':
        kwargs['connect_args'] = {'check_same_thread': False,
                                  'timeout': timeout}
        if db_url.database in (None, '', ':memory:'):
            # One shared connection, or every thread sees an empty database.
            kwargs['poolclass'] = StaticPool
    else:
        kwargs['pool_timeout'] = timeout
        if db_url.get_backend_name() == 'mysql':
            seconds = max(int(timeout), 1)
            kwargs['connect_args'] = {'connect_timeout': seconds,
                                      'read_timeout': seconds,
                                      'write_timeout': seconds}
    return create_engine(db_url, **kwargs)


class WhitelistStore:
    """Membership test and insertion for granted addresses."""

    def __init__(self, engine: Engine, table_prefix: str = '') -> None:
        self.engine = engine
        self.metadata = MetaData()
        self.table = Table(
            f'{table_prefix}ips', self.metadata,
            Column('username', Text),
            Column('ip', String(255)),
            Index(f'{table_prefix}ips_ip_unique', 'ip', unique=True),
        )

    def initialize(self) -> None:
        """Create the grant table if it does not exist yet."""
        try:
            self.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise StoreUnavailable('Could not initialize whitelist table') \
                from e
        logger.info('Whitelist table %s is ready', self.table.name)

    def contains(self, address: str) -> bool:
        """Whether a grant exists for exactly this address."""
        query = select(self.table.c.ip) \
            .where(self.table.c.ip == address) \
            .limit(1)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as e:
            raise StoreUnavailable('Whitelist lookup failed') from e
        return row is not None

    def insert(self, identity_name: str, address: str) -> Grant:
        """
        Append a grant for ``address``.

        Callers are expected to check :meth:`contains` first; this method
        only refuses a duplicate when the unique index is in place.

        Raises
        ------
        :class:`DuplicateGrant`
            The address was granted concurrently.
        :class:`StoreUnavailable`
            Any other database failure.

        """
        statement = self.table.insert().values(username=identity_name,
                                               ip=address)
        try:
            with self.engine.begin() as conn:
                conn.execute(statement)
        except IntegrityError as e:
            raise DuplicateGrant('Address is already whitelisted') from e
        except SQLAlchemyError as e:
            raise StoreUnavailable('Could not write grant') from e
        return Grant(identity_name=identity_name, address=address)

    def count(self, address: str) -> int:
        """Number of grant rows recorded for ``address``."""
        query = select(func.count()) \
            .select_from(self.table) \
            .where(self.table.c.ip == address)
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(query).scalar_one())
        except SQLAlchemyError as e:
            raise StoreUnavailable('Whitelist count failed') from e
