from __future__ import annotations

import asyncio

import pytest

from holdings.app.ledger import EnumerationResult, InvalidResponseType, LedgerUnavailable
from holdings.app.ownership import IndexEnumerator

ADDR = "0xabc"


def _enumerate(ledger, count, **kwargs) -> EnumerationResult:
    enumerator = IndexEnumerator(ledger, query_timeout_s=kwargs.pop("query_timeout_s", 0), **kwargs)
    return asyncio.run(enumerator.enumerate(ADDR, count))


def test_issues_one_query_per_index(make_ledger):
    ledger = make_ledger({ADDR: [101, 205, 310]})
    result = _enumerate(ledger, 3)
    assert result.identifiers == {101, 205, 310}
    assert result.failed_indices == ()
    assert sorted(ledger.index_calls) == [(ADDR, 0), (ADDR, 1), (ADDR, 2)]


def test_zero_count_issues_no_queries(make_ledger):
    ledger = make_ledger({ADDR: [1, 2]})
    result = _enumerate(ledger, 0)
    assert result == EnumerationResult()
    assert ledger.index_calls == []


def test_negative_count_rejected(make_ledger):
    with pytest.raises(ValueError):
        _enumerate(make_ledger({}), -1)


def test_failed_index_recorded_and_others_kept(make_ledger):
    ledger = make_ledger({ADDR: [7, LedgerUnavailable("rpc down")]})
    result = _enumerate(ledger, 2)
    assert result.identifiers == {7}
    assert result.failed_indices == (1,)
    assert result.failures[0].reason == "ledger_unavailable"


def test_failures_are_ascending_and_classified(make_ledger):
    ledger = make_ledger({ADDR: [RuntimeError("boom"), 11, "not-a-number", 3.5, InvalidResponseType("felt"), 12]})
    result = _enumerate(ledger, 7)
    assert result.identifiers == {11, 12}
    assert result.failed_indices == (0, 2, 3, 4, 6)
    reasons = {f.index: f.reason for f in result.failures}
    assert reasons == {
        0: "ledger_unavailable",
        2: "invalid_response_type",
        3: "invalid_response_type",
        4: "invalid_response_type",
        6: "index_out_of_range",
    }
    assert len(result.identifiers) + len(result.failed_indices) <= 7


def test_duplicate_identifiers_collapse(make_ledger):
    ledger = make_ledger({ADDR: [5, "0x5", 6]})
    result = _enumerate(ledger, 3)
    assert result.identifiers == {5, 6}
    assert result.failed_indices == ()


def test_u256_responses_are_coerced(make_ledger):
    ledger = make_ledger({ADDR: [["0x1", "0x0"], {"low": "0x0", "high": "0x1"}]})
    result = _enumerate(ledger, 2)
    assert result.identifiers == {1, 1 << 128}


def test_all_queries_start_before_any_completes(make_ledger):
    ledger = make_ledger({ADDR: [1, 2, 3, 4]})

    async def scenario():
        gate = ledger.hold(ADDR)
        task = asyncio.create_task(IndexEnumerator(ledger, query_timeout_s=0, max_concurrency=0).enumerate(ADDR, 4))
        while len(ledger.index_calls) < 4:
            await asyncio.sleep(0)
        assert not task.done()
        gate.set()
        return await task

    result = asyncio.run(scenario())
    assert result.identifiers == {1, 2, 3, 4}
    assert ledger.max_active == 4


def test_timeout_becomes_failure(make_ledger):
    ledger = make_ledger({ADDR: [1, 2, 3]}, hang={(ADDR, 1)})
    result = _enumerate(ledger, 3, query_timeout_s=0.05)
    assert result.identifiers == {1, 3}
    assert result.failed_indices == (1,)
    assert result.failures[0].reason == "timeout"


def test_concurrency_cap_bounds_in_flight_queries(make_ledger):
    ledger = make_ledger({ADDR: list(range(10))})
    result = _enumerate(ledger, 10, max_concurrency=2)
    assert result.identifiers == set(range(10))
    assert ledger.max_active <= 2


def test_unbounded_by_default(make_ledger):
    ledger = make_ledger({ADDR: list(range(6))})
    _enumerate(ledger, 6, max_concurrency=0)
    assert ledger.max_active == 6


def test_repeated_enumeration_is_deterministic(make_ledger):
    ledger = make_ledger({ADDR: [9, LedgerUnavailable(), 8, LedgerUnavailable()]})
    first = _enumerate(ledger, 4)
    second = _enumerate(ledger, 4)
    assert first.identifiers == second.identifiers == {8, 9}
    assert first.failed_indices == second.failed_indices == (1, 3)


def test_signed_hex_responses_are_invalid(make_ledger):
    ledger = make_ledger({ADDR: ["0x-5", "0x+5", "0x5"]})
    result = _enumerate(ledger, 3)
    assert result.identifiers == {5}
    assert result.failed_indices == (0, 1)
    assert {f.reason for f in result.failures} == {"invalid_response_type"}
