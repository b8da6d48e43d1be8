import pytest

import tdsbind
from tdsbind.connection import Connection
from tdsbind.tds_types import SqlVarChar
from utils import Result, int_column, varchar_column

from fixtures import *  # noqa: F401,F403


@pytest.fixture
def table(session):
    session.respond(
        "SELECT TOP 0 * FROM dbo.t",
        Result(
            [
                int_column("id", nullable=False),
                varchar_column("name", 50),
            ]
        ),
    )
    return "dbo.t"


def test_bulk_insert(session, conn, table):
    saved = conn.bulk_insert(table, [(1, "one"), [2, SqlVarChar("two")]])
    assert saved == 2
    assert "INSERT BULK dbo.t([id] INT, [name] VARCHAR(50))" in session.sql
    assert len(session.bulk_batches) == 1
    columns, declarations, rows = session.bulk_batches[0]
    assert [col.name for col in columns] == ["id", "name"]
    assert declarations == ["INT", "VARCHAR(50)"]
    assert rows == [[1, "one"], [2, "two"]]


def test_bulk_insert_mappings(session, conn, table):
    saved = conn.bulk_insert(table, [{"id": 1, "name": "one"}, {"id": 2}])
    assert saved == 2
    assert session.bulk_batches[0][2] == [[1, "one"], [2, None]]


def test_bulk_insert_batches(session, conn, table):
    saved = conn.bulk_insert(table, ((i, str(i)) for i in range(5)), batch_size=2)
    assert saved == 5
    assert [len(batch[2]) for batch in session.bulk_batches] == [2, 2, 1]


def test_bulk_insert_tablock(session, conn, table):
    conn.bulk_insert(table, [(1, "a")], tablock=True)
    assert (
        "INSERT BULK dbo.t([id] INT, [name] VARCHAR(50)) WITH (TABLOCK)" in session.sql
    )


def test_bulk_insert_auto_encode(session, conn, table):
    with pytest.warns(tdsbind.Warning, match="U\\+00000100"):
        conn.bulk_insert(table, [(1, "aĀ")])
    assert session.bulk_batches[0][2] == [[1, "a?"]]


def test_bulk_insert_without_auto_encode(session, conn, table):
    conn.bulk_insert(table, [(1, "aĀ")], auto_encode=False)
    assert session.bulk_batches[0][2] == [[1, "aĀ"]]


def test_missing_required_column(session, conn, table):
    with pytest.raises(KeyError):
        conn.bulk_insert(table, [{"id": 1}, {"name": "x"}], batch_size=1)
    # rows of earlier batches were already saved
    assert len(session.bulk_batches) == 1


def test_invalid_rows(session, conn, table):
    with pytest.raises(tdsbind.InterfaceError, match="unexpected column count in row 1"):
        conn.bulk_insert(table, [(1, "a"), (2,)])
    with pytest.raises(TypeError, match="invalid sequence for row 0"):
        conn.bulk_insert(table, ["ab"])
    with pytest.raises(TypeError):
        conn.bulk_insert(table, 5)
    assert session.bulk_batches == []


def test_invalid_batch_size(conn, table):
    with pytest.raises(ValueError):
        conn.bulk_insert(table, [], batch_size=0)
    with pytest.raises(TypeError):
        conn.bulk_insert(table, [], batch_size="1")


def test_empty_rows(session, conn, table):
    assert conn.bulk_insert(table, []) == 0
    assert session.bulk_batches == []


def test_bulk_copy_disabled(session, table):
    conn = Connection(session, enable_bcp=False)
    with pytest.raises(tdsbind.NotSupportedError):
        conn.bulk_insert(table, [(1, "a")])
