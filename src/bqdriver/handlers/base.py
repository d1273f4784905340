"""Base class of the command handlers."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from bqdriver.common.exceptions import BadExportFilterParametersError
from bqdriver.logging import get_logger
from bqdriver.protocols.execution import ExecutionClient
from bqdriver.query_builder.predicates import format_unix_timestamp
from bqdriver.settings import get_settings
from bqdriver.settings.imports import ImportSettings
from bqdriver.types.filters import ExportFilters

logger = get_logger(__name__)


def _is_unix_timestamp(value: str) -> bool:
    """Whether ``value`` parses as whole Unix seconds within the datetime range."""
    try:
        format_unix_timestamp(value)
    except (ValueError, OverflowError, OSError):
        return False
    return True


class CommandHandler(ABC):
    """Executes one command model against an execution client.

    A handler instance serves a single command invocation; the client is
    owned by the caller and is never closed here.

    Attributes:
        client: Execution client of the request
        settings: Import settings with preview limits and sampling
        operation_name: Name of the span opened around ``handle``
    """

    operation_name: str = "bqdriver.command"

    def __init__(self, client: ExecutionClient, settings: Optional[ImportSettings] = None):
        self.client = client
        self.settings = settings or get_settings().imports

    @abstractmethod
    def handle(self, command: Any) -> Any:
        """Run ``command`` and return its response model."""
        pass

    def validate_change_filters(self, command_name: str, filters: ExportFilters) -> None:
        """Reject change bounds that are not whole-second Unix timestamps.

        Raises:
            BadExportFilterParametersError: Naming the offending field
        """
        for field, value in (("changeSince", filters.change_since), ("changeUntil", filters.change_until)):
            if value and not _is_unix_timestamp(value):
                raise BadExportFilterParametersError(
                    f"{command_name}.{field} must be numeric timestamp",
                    details={"field": field, "value": value},
                )
