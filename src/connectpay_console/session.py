from __future__ import annotations

from dataclasses import dataclass, field

from .clients.ledger import LedgerClient
from .clients.resources import ResourceClient, SnapshotClient
from .config import ClientConfig
from .events import EventBus, SessionExpired
from .exceptions import AuthError
from .http_client import HttpClient
from .logging_utils import get_logger, log_action
from .loop import BackgroundRunner, InlineRunner, ManualLoop, UiLoop

logger = get_logger(__name__)


@dataclass
class ConsoleSession:
    """Everything the panels of one signed-in operator share.

    The token comes from the (external) login layer; when the API answers
    401 the session flips to expired and publishes ``SessionExpired`` so that
    layer can react.
    """

    config: ClientConfig
    token: str | None = None
    bus: EventBus = field(default_factory=EventBus)
    loop: UiLoop = field(default_factory=ManualLoop)
    runner: BackgroundRunner = field(default_factory=InlineRunner)
    http: HttpClient | None = None
    expired: bool = False

    def __post_init__(self) -> None:
        if self.http is None:
            self.http = HttpClient(config=self.config)

    def resource_client(self, definition) -> ResourceClient:
        return ResourceClient(
            http=self.http,
            token_provider=self.current_token,
            path=definition.path,
            list_path=definition.list_path,
            summary_model=definition.summary_model,
            detail_model=definition.detail_model,
            list_keys=definition.list_keys,
            module=definition.name,
        )

    def ledger_client(self, base_path: str = "/ledger") -> LedgerClient:
        return LedgerClient(http=self.http, token_provider=self.current_token, base_path=base_path)

    def snapshot_client(self, paths: dict[str, str], module: str = "dashboard") -> SnapshotClient:
        return SnapshotClient(http=self.http, token_provider=self.current_token, paths=dict(paths), module=module)

    def current_token(self) -> str | None:
        return self.token

    def renew(self, token: str) -> None:
        self.token = token
        self.expired = False

    def expire(self, source: str, error: AuthError) -> None:
        self.expired = True
        log_action(logger, source, "session", "expired", code=error.code, trace_id=error.trace_id)
        self.bus.publish(SessionExpired(source=source, reason=error.message, trace_id=error.trace_id))
