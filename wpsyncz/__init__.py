"""wpsyncz - Sync WordPress environments over ssh."""

__version__ = "0.1.0"

from .config import SynczConfig, load_config
from .environment import EnvironmentDescriptor, EnvironmentResolver
from .exceptions import (
    CommandError,
    CompatibilityError,
    ConfigurationError,
    ConfirmationDeclined,
    NewerRemoteError,
    OutdatedRemoteError,
    RemoteUnavailableError,
    TransferError,
    UnknownEnvironmentError,
    WorkingDirError,
    WpSynczError,
)
from .orchestrator import SyncOrchestrator
from .snapshot import PROTOCOL_VERSION, SnapshotCollector, StateSnapshot
from .transport import Transport

__all__ = [
    "__version__",
    "PROTOCOL_VERSION",
    "CommandError",
    "CompatibilityError",
    "ConfigurationError",
    "ConfirmationDeclined",
    "EnvironmentDescriptor",
    "EnvironmentResolver",
    "NewerRemoteError",
    "OutdatedRemoteError",
    "RemoteUnavailableError",
    "SnapshotCollector",
    "StateSnapshot",
    "SyncOrchestrator",
    "SynczConfig",
    "Transport",
    "TransferError",
    "UnknownEnvironmentError",
    "WorkingDirError",
    "WpSynczError",
    "load_config",
]
