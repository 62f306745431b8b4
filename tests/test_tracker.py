import asyncio

import pytest

from adlens.core.exceptions import CredentialExpired, GraphAPIError
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.cache import ResponseCache
from adlens.services.meta.tracker import FetchState, RequestTracker


def test_tickets_supersede_older_invocations():
    tracker = RequestTracker()

    first = tracker.begin("scope")
    second = tracker.begin("scope")

    assert tracker.state("scope") == FetchState.FETCHING
    assert not tracker.is_current("scope", first)
    assert tracker.finish("scope", first, FetchState.SUCCESS) is False
    assert tracker.state("scope") == FetchState.FETCHING
    assert tracker.finish("scope", second, FetchState.SUCCESS) is True
    assert tracker.state("scope") == FetchState.SUCCESS
    assert tracker.state("unknown") == FetchState.IDLE


def _aggregator(clock):
    return MetaAggregator(client=None, cache=ResponseCache(clock=clock), tracker=RequestTracker())


def test_superseded_result_is_returned_but_not_cached(clock):
    aggregator = _aggregator(clock)
    scope = aggregator.cache.make_key("meta", "tok", "act_1")

    async def collect():
        # a newer invocation for the same account starts while this one is in flight
        aggregator.tracker.begin(scope)
        return ["stale"]

    result = asyncio.run(aggregator.run("tok", collect, account_id="act_1"))

    assert result == ["stale"]
    assert len(aggregator.cache) == 0


def test_current_result_is_cached(clock):
    aggregator = _aggregator(clock)

    async def collect():
        return ["fresh"]

    asyncio.run(aggregator.run("tok", collect, account_id="act_1"))

    assert aggregator.cache.get(aggregator.cache.make_key("meta", "tok", "act_1")) == ["fresh"]


def test_failure_leaves_cache_untouched(clock):
    aggregator = _aggregator(clock)
    key = aggregator.cache.make_key("meta", "tok", "act_1")

    async def fail():
        raise GraphAPIError("Error validating access token", code=190)

    with pytest.raises(CredentialExpired):
        asyncio.run(aggregator.run("tok", fail, account_id="act_1"))

    assert aggregator.cache.get(key) is None
    assert aggregator.tracker.state(key) == FetchState.FAILED


def test_vendor_error_stays_on_the_cause_only(clock):
    aggregator = _aggregator(clock)
    vendor = GraphAPIError("Error validating access token", code=190, subcode=460)

    async def fail():
        raise vendor

    with pytest.raises(CredentialExpired) as excinfo:
        asyncio.run(aggregator.run("tok", fail, account_id="act_1"))

    assert excinfo.value.details == {}
    assert excinfo.value.__cause__ is vendor
