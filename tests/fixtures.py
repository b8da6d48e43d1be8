import pytest

from tdsbind.connection import Connection
from utils import FakeSession


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def conn(session):
    connection = Connection(session)
    yield connection
    if connection._session is not None:
        connection.close()


@pytest.fixture
def autocommit_conn(session):
    connection = Connection(session, autocommit=True)
    yield connection
    if connection._session is not None:
        connection.close()


@pytest.fixture
def named_conn(session):
    connection = Connection(session, paramstyle="named", autocommit=True)
    yield connection
    if connection._session is not None:
        connection.close()


@pytest.fixture
def cursor(conn):
    with conn.cursor() as cur:
        yield cur


@pytest.fixture
def strict_conn(session):
    connection = Connection(session, autocommit=True, warning_as_error=True)
    yield connection
    if connection._session is not None:
        connection.close()


__all__ = [
    "session",
    "conn",
    "autocommit_conn",
    "named_conn",
    "cursor",
    "strict_conn",
]
