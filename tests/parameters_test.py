import unittest

import pytest

from tdsbind import tds_base
from tdsbind.parameters import (
    BoundResult,
    Parameter,
    build_procedure_request,
    build_request,
    parse_markers,
    resolve_results,
)
from tdsbind.tds_base import TDS74
from tdsbind.tds_types import SqlVarChar, TypeInferrer


@pytest.fixture
def inferrer():
    return TypeInferrer(TDS74)


def test_parameter():
    param = Parameter(1, output=True)
    assert param.value == 1
    assert param.output
    assert repr(param) == "Parameter(1, output=True)"
    assert repr(Parameter("a")) == "Parameter('a')"
    assert Parameter(1) == 1
    assert Parameter(1) == Parameter(1)
    assert Parameter(1) < Parameter(2)
    assert Parameter(3) > 2


def test_parse_numeric_markers():
    assert parse_markers("SELECT :0, :12", "numeric") == [(7, 9, 0), (11, 14, 12)]


def test_markers_inside_literals_are_ignored():
    assert parse_markers("SELECT ':0', :1", "numeric") == [(13, 15, 1)]


def test_parse_named_markers():
    assert parse_markers("SELECT :a_1 + :b", "named") == [
        (7, 11, "a_1"),
        (14, 16, "b"),
    ]


def test_invalid_marker():
    with pytest.raises(tds_base.InterfaceError, match="invalid parameter marker"):
        parse_markers("SELECT :x", "numeric")
    with pytest.raises(tds_base.InterfaceError, match="invalid parameter marker"):
        parse_markers("SELECT : ", "named")


def test_plain_batch_without_parameters(inferrer):
    request = build_request("SELECT 1", None, "numeric", inferrer)
    assert not request.is_rpc
    assert request.sql == "SELECT 1"
    request = build_request("SELECT 1", (), "numeric", inferrer)
    assert not request.is_rpc


def test_numeric_request(inferrer):
    request = build_request("SELECT :0 AS v, :1, :0", (12345, "x"), "numeric", inferrer)
    assert request.is_rpc
    assert request.procname == "sp_executesql"
    assert request.sql == "SELECT @param0 AS v, @param1, @param0"
    assert request.first_param == 2
    stmt, params = request.parameters[:2]
    assert stmt.name == "@stmt"
    assert stmt.value == request.sql
    assert params.name == "@params"
    assert params.value == "@param0 SMALLINT, @param1 NVARCHAR(1)"
    assert [p.value for p in request.parameters[2:]] == [12345, "x"]


def test_named_request(inferrer):
    request = build_request(
        "SELECT :a, :b", {"a": 1, "b": Parameter(None, output=True)}, "named", inferrer
    )
    assert request.sql == "SELECT @a, @b"
    assert request.parameters[1].value == "@a TINYINT, @b VARCHAR(1) OUTPUT"
    assert request.parameters[3].output


def test_unused_parameters_are_still_sent(inferrer):
    request = build_request("SELECT 1", (1,), "numeric", inferrer)
    assert request.is_rpc
    assert len(request.parameters) == 3


def test_wrapped_parameter(inferrer):
    request = build_request("SELECT :0", (SqlVarChar("abcdef", size=3),), "numeric", inferrer)
    param = request.parameters[2]
    assert param.value == "abc"
    assert param.size == 3
    assert param.declaration == "@param0 VARCHAR(3)"


def test_output_buffer_size(inferrer):
    request = build_procedure_request(
        "sp_out", (Parameter(SqlVarChar("", size=100), output=True),), inferrer
    )
    param = request.parameters[0]
    assert param.output
    assert param.size == 100
    assert param.declaration == " VARCHAR(100) OUTPUT"


def test_missing_numeric_parameter(inferrer):
    with pytest.raises(IndexError, match="^2$"):
        build_request("SELECT :0, :2", (1, 2), "numeric", inferrer)


def test_unknown_named_parameter(inferrer):
    with pytest.raises(LookupError, match='unknown named parameter "c"'):
        build_request("SELECT :a, :c", {"a": 1}, "named", inferrer)


def test_wrong_parameters_container(inferrer):
    with pytest.raises(TypeError):
        build_request("SELECT :0", {"a": 1}, "numeric", inferrer)
    with pytest.raises(TypeError):
        build_request("SELECT :0", "a", "numeric", inferrer)
    with pytest.raises(TypeError):
        build_request("SELECT :a", (1,), "named", inferrer)


def test_widest_types_without_minimization(inferrer):
    request = build_request("SELECT :0, :1", (1, "a"), "numeric", inferrer, False)
    assert request.parameters[1].value == "@param0 BIGINT, @param1 NVARCHAR(MAX)"


class ProcedureRequestTestCase(unittest.TestCase):
    def setUp(self):
        self.inferrer = TypeInferrer(TDS74)

    def test_positional(self):
        request = build_procedure_request(
            "sp_test", (1, Parameter("a", output=True)), self.inferrer
        )
        self.assertTrue(request.is_rpc)
        self.assertEqual(request.procname, "sp_test")
        self.assertEqual(request.first_param, 0)
        self.assertEqual([p.name for p in request.parameters], ["", ""])
        self.assertEqual([p.output for p in request.parameters], [False, True])

    def test_named(self):
        request = build_procedure_request(
            "sp_test", {"@a": 1, "@b": 2}, self.inferrer
        )
        self.assertEqual([p.name for p in request.parameters], ["@a", "@b"])

    def test_invalid_name(self):
        with self.assertRaisesRegex(tds_base.InterfaceError, 'invalid parameter name "a"'):
            build_procedure_request("sp_test", {"a": 1}, self.inferrer)
        with self.assertRaisesRegex(tds_base.InterfaceError, 'invalid parameter name "@"'):
            build_procedure_request("sp_test", {"@": 1}, self.inferrer)

    def test_invalid_container(self):
        with self.assertRaises(TypeError):
            build_procedure_request("sp_test", [1, 2], self.inferrer)

    def test_resolve_results(self):
        request = build_procedure_request(
            "sp_test",
            (1, Parameter(None, output=True), Parameter(3, output=True)),
            self.inferrer,
        )
        results = resolve_results(request, {1: "out"})
        self.assertEqual(
            results,
            [BoundResult.Input, BoundResult.Output("out"), BoundResult.Input],
        )
        self.assertFalse(results[0].is_output)
        self.assertTrue(results[1].is_output)
        self.assertEqual(repr(results[1]), "BoundResult.Output('out')")

    def test_resolve_results_of_statement(self):
        request = build_request(
            "SET :0 = 5", (Parameter(None, output=True),), "numeric", self.inferrer
        )
        results = resolve_results(request, {2: 5})
        self.assertEqual(results, [BoundResult.Output(5)])
