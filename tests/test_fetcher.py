from __future__ import annotations

import pytest

from connectpay_console.config import ClientConfig
from connectpay_console.events import FetchFailed, ResourceRefreshed, SessionExpired
from connectpay_console.exceptions import AuthError, ServerError
from connectpay_console.fetcher import ResourceFetcher
from connectpay_console.loop import InlineRunner, ManualLoop
from connectpay_console.models import QueryDescriptor, ResourcePage
from connectpay_console.query_state import QueryState
from connectpay_console.session import ConsoleSession
from connectpay_console.view_state import ViewStatus

from conftest import DeferredRunner


def _page_for(descriptor: QueryDescriptor) -> ResourcePage:
    return ResourcePage(items=[{"id": f"{descriptor.search}-1"}], page=descriptor.page, total_pages=1, total_count=1)


def test_stale_response_is_discarded(deferred_runner: DeferredRunner) -> None:
    runner = deferred_runner
    query = QueryState()
    fetcher = ResourceFetcher("users", _page_for, loop=ManualLoop(), runner=runner, query=query)

    query.set_search("a")
    query.set_search("b")
    assert len(runner.pending) == 2

    runner.complete(1)
    runner.complete(0)

    assert fetcher.result.items == [{"id": "b-1"}]
    assert fetcher.state.applied_descriptor.search == "b"
    assert fetcher.state.discarded == 1
    assert fetcher.loading is False


def test_older_response_arriving_first_is_also_dropped(deferred_runner: DeferredRunner) -> None:
    runner = deferred_runner
    query = QueryState()
    fetcher = ResourceFetcher("users", _page_for, loop=ManualLoop(), runner=runner, query=query)

    query.set_search("a")
    query.set_search("b")
    runner.complete(0)
    assert fetcher.result is None
    assert fetcher.loading is True

    runner.complete(0)
    assert fetcher.result.items == [{"id": "b-1"}]


def test_polling_refetches_on_interval() -> None:
    loop = ManualLoop()
    calls: list[QueryDescriptor] = []

    def load(descriptor: QueryDescriptor) -> ResourcePage:
        calls.append(descriptor)
        return ResourcePage.empty(descriptor.page)

    fetcher = ResourceFetcher("transactions", load, loop=loop, runner=InlineRunner())
    fetcher.start_polling(30)
    loop.advance(29)
    assert calls == []
    loop.advance(1)
    assert len(calls) == 1
    loop.advance(60)
    assert len(calls) == 3
    assert fetcher.polling


def test_poll_tick_skipped_while_request_in_flight(deferred_runner: DeferredRunner) -> None:
    loop = ManualLoop()
    runner = deferred_runner
    fetcher = ResourceFetcher("stats", lambda descriptor: {"users": 1}, loop=loop, runner=runner)

    fetcher.fetch()
    fetcher.start_polling(30)
    loop.advance(30)
    assert len(runner.pending) == 1
    assert fetcher.polling

    runner.complete()
    loop.advance(30)
    assert len(runner.pending) == 1


def test_dispose_stops_polling_and_drops_late_responses(deferred_runner: DeferredRunner) -> None:
    loop = ManualLoop()
    runner = deferred_runner
    fetcher = ResourceFetcher("users", _page_for, loop=loop, runner=runner)
    seen: list = []
    fetcher.on_result(seen.append)

    fetcher.fetch(QueryDescriptor(search="x"))
    fetcher.start_polling(10)
    fetcher.dispose()
    runner.complete()
    loop.advance(100)

    assert fetcher.result is None
    assert seen == []
    assert loop.pending_timers == 0
    assert fetcher.fetch() is None
    assert runner.pending == []


def test_suspend_drops_late_response_and_resume_follows_query_again(deferred_runner: DeferredRunner) -> None:
    loop = ManualLoop()
    query = QueryState()
    fetcher = ResourceFetcher("users", _page_for, loop=loop, runner=deferred_runner, query=query)
    seen: list = []
    fetcher.on_result(seen.append)

    fetcher.fetch()
    fetcher.start_polling(10)
    fetcher.suspend()
    deferred_runner.complete()
    query.set_search("ignored")
    loop.advance(60)

    assert seen == []
    assert fetcher.fetch() is None
    assert loop.pending_timers == 0
    assert deferred_runner.pending == []

    fetcher.resume()
    query.set_search("ada")
    deferred_runner.complete()
    fetcher.start_polling(10)

    assert fetcher.result.items == [{"id": "ada-1"}]
    assert seen == [fetcher.result]
    assert fetcher.polling


def test_start_polling_rejects_non_positive_interval() -> None:
    fetcher = ResourceFetcher("users", _page_for, loop=ManualLoop(), runner=InlineRunner())
    with pytest.raises(ValueError):
        fetcher.start_polling(0)


def test_auth_failure_publishes_one_session_expired(config: ClientConfig) -> None:
    session = ConsoleSession(config=config, token="tkn")
    expired: list[SessionExpired] = []
    failed: list[FetchFailed] = []
    session.bus.subscribe(SessionExpired, expired.append)
    session.bus.subscribe(FetchFailed, failed.append)

    def load(descriptor: QueryDescriptor) -> ResourcePage:
        raise AuthError(code="SESSION_EXPIRED", message="jwt expired", details=None, trace_id="t-1", status_code=401)

    fetcher = ResourceFetcher(
        "users",
        load,
        loop=session.loop,
        runner=session.runner,
        bus=session.bus,
        on_auth_failure=session.expire,
    )
    fetcher.fetch()

    assert len(expired) == 1
    assert expired[0].source == "users"
    assert len(failed) == 1
    assert session.expired is True
    assert fetcher.view_state().status is ViewStatus.SESSION_EXPIRED
    assert fetcher.result == ResourcePage.empty(1)

    fetcher.fetch()
    assert len(expired) == 2


def test_server_error_sets_visible_error_and_fallback(config: ClientConfig) -> None:
    session = ConsoleSession(config=config)
    refreshed: list[ResourceRefreshed] = []
    session.bus.subscribe(ResourceRefreshed, refreshed.append)
    outcomes = iter([ServerError(code="HTTP_ERROR", message="", details=None, trace_id=None, status_code=500)])

    def load(descriptor: QueryDescriptor) -> ResourcePage:
        error = next(outcomes, None)
        if error is not None:
            raise error
        return ResourcePage(items=[{"id": "u1"}], page=1, total_pages=1, total_count=1)

    fetcher = ResourceFetcher("users", load, loop=session.loop, runner=session.runner, bus=session.bus)
    fetcher.fetch()
    assert fetcher.error is not None
    assert fetcher.view_state().status is ViewStatus.ERROR
    assert fetcher.result.items == []

    fetcher.refetch()
    assert fetcher.error is None
    assert fetcher.view_state().status is ViewStatus.READY
    assert refreshed[-1].total_count == 1
