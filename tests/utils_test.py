import time

import pytest

import tdsbind.utils


@pytest.mark.parametrize(
    "server,expected",
    [
        ("host", ("host", None)),
        (".", ("localhost", None)),
        ("(local)", ("localhost", None)),
        ("host\\sqlexpress", ("host", "SQLEXPRESS")),
        (".\\inst", ("localhost", "INST")),
        ("host\\", ("host", None)),
    ],
)
def test_parse_server(server, expected):
    assert tdsbind.utils.parse_server(server) == expected


def test_exponential_backoff_success_first_attempt():
    """
    Test exponential backoff succeeding on first attempt
    """
    got_exception = {"value": None}

    def ex_handler(ex):
        got_exception["value"] = ex

    res = tdsbind.utils.exponential_backoff(
        work=lambda t: t,
        ex_handler=ex_handler,
        max_time_sec=1,
        first_attempt_time_sec=0.1,
    )
    # work receives the time allotted to the attempt
    assert res == 0.1
    assert got_exception["value"] is None


def test_exponential_backoff_timeout():
    """
    Should perform 4 attempts with expected timeouts for each when attempts fail
    """
    timeouts = []

    def work(t):
        timeouts.append(t)
        raise RuntimeError("raising test exception")

    with pytest.raises(TimeoutError, match="gave up after 4 attempts") as ctx:
        tdsbind.utils.exponential_backoff(
            work=work,
            ex_handler=lambda ex: None,
            max_time_sec=1,
            first_attempt_time_sec=0.1,
        )
    assert isinstance(ctx.value.__cause__, RuntimeError)
    # attempts are
    # 1: timeout 0.1, ends at 0.1
    # 2: timeout 0.2, ends at 0.3
    # 3: timeout 0.4, ends at 0.7
    # 4: timeout 0.3, ends at 1.0
    assert len(timeouts) == 4
    assert timeouts[:3] == [0.1, 0.2, 0.4]
    assert timeouts[3] == pytest.approx(0.3, abs=0.05)


def test_exponential_backoff_success_after_failure():
    attempts = []

    def work(t):
        attempts.append(t)
        if len(attempts) < 2:
            raise OSError("connection refused")
        return "connected"

    start = time.monotonic()
    res = tdsbind.utils.exponential_backoff(
        work=work,
        ex_handler=lambda ex: None,
        max_time_sec=5,
        first_attempt_time_sec=0.05,
    )
    assert res == "connected"
    assert attempts == [0.05, 0.1]
    # failed attempt used up it's allotted time
    assert time.monotonic() - start >= 0.05


def test_exponential_backoff_handler_stops_retrying():
    def ex_handler(ex):
        raise ex

    attempts = []

    def work(t):
        attempts.append(t)
        raise ValueError("bad credentials")

    with pytest.raises(ValueError, match="bad credentials"):
        tdsbind.utils.exponential_backoff(
            work=work,
            ex_handler=ex_handler,
            max_time_sec=5,
            first_attempt_time_sec=0.1,
        )
    assert len(attempts) == 1
