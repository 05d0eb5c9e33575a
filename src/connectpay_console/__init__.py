from .balance import BalanceMutationGuard
from .bulk import BulkActionDispatcher, ConfirmationPolicy
from .config import ClientConfig, ConfigError, load_config
from .console import ResourceConsole
from .dashboard import DashboardFeeds, FeedDefinition
from .events import (
    AccountBalanceChanged,
    BulkActionCompleted,
    EventBus,
    FetchFailed,
    ResourceRefreshed,
    SessionExpired,
    ShowTicketRequested,
)
from .exceptions import ApiError, AuthError, NetworkError, NotFoundError, ServerError, ValidationError
from .export import export_rows
from .fetcher import FetchTicket, ResourceFetcher
from .http_client import HttpClient
from .loop import InlineRunner, ManualLoop, ThreadRunner, TkLoop
from .modal_stack import ModalKind, ModalStack, ModalStackEntry
from .models import (
    BulkActionResult,
    MutationDirection,
    MutationResult,
    QueryDescriptor,
    ResourcePage,
    SortOrder,
    WalletMutation,
)
from .query_state import QueryState
from .resources import DEFINITIONS, SERVICES, SETTLEMENTS, TRANSACTIONS, USERS, ResourceDefinition, get_definition
from .selection import SelectionSet
from .session import ConsoleSession
from .validation import ClientValidationError, ConfirmationRequired, DuplicateSubmissionError, ValidationIssue

__version__ = "0.1.0"

__all__ = [
    "AccountBalanceChanged",
    "ApiError",
    "AuthError",
    "BalanceMutationGuard",
    "BulkActionCompleted",
    "BulkActionDispatcher",
    "BulkActionResult",
    "ClientConfig",
    "ClientValidationError",
    "ConfigError",
    "ConfirmationPolicy",
    "ConfirmationRequired",
    "ConsoleSession",
    "DEFINITIONS",
    "DashboardFeeds",
    "DuplicateSubmissionError",
    "EventBus",
    "FeedDefinition",
    "FetchFailed",
    "FetchTicket",
    "HttpClient",
    "InlineRunner",
    "ManualLoop",
    "ModalKind",
    "ModalStack",
    "ModalStackEntry",
    "MutationDirection",
    "MutationResult",
    "NetworkError",
    "NotFoundError",
    "QueryDescriptor",
    "QueryState",
    "ResourceConsole",
    "ResourceDefinition",
    "ResourceFetcher",
    "ResourcePage",
    "ResourceRefreshed",
    "SERVICES",
    "SETTLEMENTS",
    "SelectionSet",
    "ServerError",
    "SessionExpired",
    "ShowTicketRequested",
    "SortOrder",
    "TRANSACTIONS",
    "ThreadRunner",
    "TkLoop",
    "USERS",
    "ValidationError",
    "ValidationIssue",
    "WalletMutation",
    "export_rows",
    "get_definition",
    "load_config",
]
