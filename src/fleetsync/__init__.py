"""fleetsync - live synchronized document store for fleet dispatch records."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetsync")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetsync.client import FleetClient
from fleetsync.config import FleetConfig
from fleetsync.editor import (
    ChildRef,
    append_child,
    destination_path,
    edit,
    remove_child,
    set_field,
    toggle_field,
    vehicle_path,
)
from fleetsync.exceptions import (
    FleetConfigError,
    FleetError,
    FleetNotFoundError,
    FleetPermissionDeniedError,
    FleetStaleReferenceError,
    FleetSubscriptionError,
    FleetTransportError,
    FleetUnavailableError,
    FleetValidationError,
    FleetWriteError,
)
from fleetsync.feed import ChangeFeed
from fleetsync.live import LiveCollection
from fleetsync.memory import MemoryRemoteStore
from fleetsync.mutations import MutationGateway
from fleetsync.remote import HttpRemoteStore, RemoteStore, Subscription
from fleetsync.state.events import FeedSnapshot, FeedState, FieldFilter
from fleetsync.state.reconciler import Reconciler
from fleetsync.state.store import DocumentStore
from fleetsync.views import DerivedView, SortDirection, SortState

__all__ = [
    "ChangeFeed",
    "ChildRef",
    "DerivedView",
    "DocumentStore",
    "FeedSnapshot",
    "FeedState",
    "FieldFilter",
    "FleetClient",
    "FleetConfig",
    "FleetConfigError",
    "FleetError",
    "FleetNotFoundError",
    "FleetPermissionDeniedError",
    "FleetStaleReferenceError",
    "FleetSubscriptionError",
    "FleetTransportError",
    "FleetUnavailableError",
    "FleetValidationError",
    "FleetWriteError",
    "HttpRemoteStore",
    "LiveCollection",
    "MemoryRemoteStore",
    "MutationGateway",
    "Reconciler",
    "RemoteStore",
    "SortDirection",
    "SortState",
    "Subscription",
    "__version__",
    "append_child",
    "destination_path",
    "edit",
    "remove_child",
    "set_field",
    "toggle_field",
    "vehicle_path",
]
