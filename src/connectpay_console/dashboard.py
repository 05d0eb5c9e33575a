"""Dashboard feeds, each on its own poll timer.

A feed that fails keeps its own error and fallback value; the others carry on.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from .fetcher import ResourceFetcher
from .logging_utils import get_logger, log_action
from .session import ConsoleSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeedDefinition:
    name: str
    path: str
    interval_seconds: float
    empty: Any = None


DEFAULT_FEEDS: tuple[FeedDefinition, ...] = (
    FeedDefinition("stats", "/api/dashboard/stats", 30.0, {}),
    FeedDefinition("activities", "/api/dashboard/recent-activities", 60.0, []),
    FeedDefinition("menu_stats", "/api/services/stats", 300.0, {}),
    FeedDefinition("profile", "/api/admin/profile", 60.0, {}),
    FeedDefinition("api_balances", "/api/clubkonnect/dashboard-balance", 120.0, {}),
)


class DashboardFeeds:
    def __init__(self, session: ConsoleSession, feeds: tuple[FeedDefinition, ...] = DEFAULT_FEEDS) -> None:
        self.session = session
        self.definitions = {feed.name: feed for feed in feeds}
        self.client = session.snapshot_client({feed.name: feed.path for feed in feeds})
        self.fetchers: dict[str, ResourceFetcher[Any]] = {
            feed.name: self._build_fetcher(feed) for feed in feeds
        }
        self.running = False

    def _build_fetcher(self, feed: FeedDefinition) -> ResourceFetcher[Any]:
        return ResourceFetcher(
            f"dashboard.{feed.name}",
            lambda _descriptor: self.client.read(feed.name),
            loop=self.session.loop,
            runner=self.session.runner,
            fallback=lambda _descriptor: copy.copy(feed.empty),
            bus=self.session.bus,
            on_auth_failure=self.session.expire,
        )

    def __getitem__(self, name: str) -> ResourceFetcher[Any]:
        return self.fetchers[name]

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        for name, fetcher in self.fetchers.items():
            fetcher.fetch()
            fetcher.start_polling(self.definitions[name].interval_seconds)
        log_action(logger, "dashboard", "start", "polling", feeds=len(self.fetchers))

    def stop(self) -> None:
        for fetcher in self.fetchers.values():
            fetcher.stop_polling()
        self.running = False
        log_action(logger, "dashboard", "stop", "done")

    def dispose(self) -> None:
        for fetcher in self.fetchers.values():
            fetcher.dispose()
        self.running = False

    def refresh_all(self) -> None:
        for fetcher in self.fetchers.values():
            fetcher.refetch()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "data": fetcher.result,
                "loading": fetcher.loading,
                "error": fetcher.error.message if fetcher.error else None,
                "status": fetcher.view_state().status.value,
                "last_updated": fetcher.state.last_updated,
            }
            for name, fetcher in self.fetchers.items()
        }
