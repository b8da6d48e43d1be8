import datetime

import pytest
import pytds
import pytds.tds_base

import tdsbind
from tdsbind import tds_base, tds_session
from utils import FakeSession


@pytest.fixture
def opened(monkeypatch):
    calls = []
    sessions = []

    def fake_open(**kwargs):
        calls.append(kwargs)
        session = FakeSession(tds_version=kwargs["tds_version"])
        sessions.append(session)
        return session

    monkeypatch.setattr(tds_session.PytdsSession, "open", staticmethod(fake_open))
    return calls, sessions


def test_connect(opened):
    calls, sessions = opened
    conn = tdsbind.connect("db-host\\sqlexpress", user="sa", password="secret")
    assert isinstance(conn, tdsbind.Connection)
    kwargs = calls[0]
    assert kwargs["server"] == "db-host"
    assert kwargs["instance"] == "SQLEXPRESS"
    assert kwargs["user"] == "sa"
    assert kwargs["password"] == "secret"
    assert kwargs["appname"] == "tdsbind"
    assert kwargs["tds_version"] == tds_base.TDS74
    assert not kwargs["read_only"]
    assert conn.tds_version == "7.4"
    assert conn.paramstyle == "numeric"
    assert not conn.autocommit
    assert conn.timeout == 5
    conn.close()
    assert sessions[0].closed


def test_connect_options(opened):
    calls, sessions = opened
    conn = tdsbind.connect(
        "host",
        port=1444,
        instance="inst",
        tds_version="7.1",
        paramstyle="named",
        autocommit=True,
        ansi_defaults=False,
        read_only=True,
    )
    assert calls[0]["port"] == 1444
    assert calls[0]["instance"] == "inst"
    assert calls[0]["tds_version"] == tds_base.TDS71
    assert calls[0]["read_only"]
    assert conn.paramstyle == "named"
    assert conn.autocommit
    assert sessions[0].requests == []
    conn.close()


def test_invalid_paramstyle(opened):
    with pytest.raises(ValueError, match='unsupported paramstyle "qmark"'):
        tdsbind.connect("host", paramstyle="qmark")
    assert opened[0] == []


def test_invalid_tds_version(opened):
    with pytest.raises(tdsbind.InterfaceError, match='unsupported TDS version "6.0"'):
        tdsbind.connect("host", tds_version="6.0")
    assert opened[0] == []


def test_session_closed_when_setup_fails(opened, monkeypatch):
    def failing_submit(self, sql):
        raise tds_session.RequestFailed("setup failed")

    monkeypatch.setattr(FakeSession, "submit_query", failing_submit)
    with pytest.raises(tdsbind.DatabaseError):
        tdsbind.connect("host")
    assert opened[1][0].closed


def test_login_failure(monkeypatch):
    def fake_connect(**kwargs):
        raise pytds.tds_base.LoginError("Login failed for user 'sa'.")

    monkeypatch.setattr(pytds, "connect", fake_connect)
    with pytest.raises(tdsbind.OperationalError, match="Login failed"):
        tdsbind.connect("host", user="sa", password="bad")


def test_unreachable_server(monkeypatch):
    attempts = []

    def fake_connect(**kwargs):
        attempts.append(kwargs["login_timeout"])
        raise OSError("connection refused")

    monkeypatch.setattr(pytds, "connect", fake_connect)
    with pytest.raises(tdsbind.OperationalError, match="Unable to connect to host"):
        tdsbind.connect("host", login_timeout=1)
    assert len(attempts) >= 1


def test_module_globals():
    assert tdsbind.apilevel == "2.0"
    assert tdsbind.threadsafety == 1
    assert tdsbind.paramstyle == "numeric"
    assert tdsbind.Date(2001, 2, 3) == datetime.date(2001, 2, 3)
    assert tdsbind.Time(1, 2, 3) == datetime.time(1, 2, 3)
    assert tdsbind.Timestamp(2001, 2, 3, 4, 5, 6) == datetime.datetime(
        2001, 2, 3, 4, 5, 6
    )
    assert tdsbind.Binary(bytearray(b"ab")) == b"ab"
    assert isinstance(tdsbind.Binary(memoryview(b"ab")), bytes)
    assert isinstance(tdsbind.TimestampFromTicks(0), datetime.datetime)
    assert isinstance(tdsbind.DateFromTicks(0), datetime.date)
    assert isinstance(tdsbind.TimeFromTicks(0), datetime.time)
    assert tdsbind.TdsType.INT == tds_base.SYBINT4
