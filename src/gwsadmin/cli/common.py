"""
Shared pieces of the command layer: the per-invocation context handed to
every command through typer's ctx.obj, and the error handling decorator that
is the one place errors turn into messages and exit codes.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar
import functools
import logging

import typer
from googleapiclient.errors import HttpError
from rich.console import Console

from ..cache import ResponseCache
from ..config import Settings, qualify_group
from ..errors import ApiError, ConfigurationError, GWSAdminError, ValidationError
from ..output import Formatter

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

err_console = Console(stderr=True, highlight=False)


@dataclass
class AppContext():
    settings: Settings = field(default_factory=Settings)
    formatter: Formatter = field(default_factory=Formatter)
    cache: ResponseCache = field(default_factory=lambda: ResponseCache(enabled=False))

    @property
    def domain(self) -> str:
        return self.settings.domain

    def require_domain(self) -> str:
        if not self.settings.domain:
            raise ConfigurationError("no domain configured",
                                     ["pass --domain, set GWSADMIN_DOMAIN or add 'domain:' to the config file"])
        return self.settings.domain

    def group_email(self, name: str) -> str:
        return qualify_group(name, self.settings.domain)

    def confirm(self, force: bool, action: str) -> None:
        """
        Destructive commands never prompt; they need --force or the global --yes.
        """
        if not (force or self.settings.yes):
            raise ValidationError(f"refusing to {action} without confirmation",
                                  ["re-run with --force (or the global --yes) to proceed"])

    def cached(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Read-through with the TTL in effect for this run, so a shorter
        --cache-ttl also expires entries written under a longer one.
        """
        return self.cache.fetch(key, loader, self.cache.ttl)

    def echo(self, data: Any, headers: list[str]|None = None) -> None:
        self.formatter.echo(data, headers)

    def note(self, text: str = "") -> None:
        self.formatter.note(text)


def get_context(ctx: typer.Context) -> AppContext:
    """The context set up by the root callback, or defaults when run bare."""
    root = ctx.find_root()
    if not isinstance(root.obj, AppContext):
        root.obj = AppContext()
    return root.obj


def report_error(error: GWSAdminError) -> None:
    err_console.print(f"Error: {error.message}", markup=False, soft_wrap=True)
    if error.hints:
        heading = "Common reasons for failure:" if isinstance(error, ApiError) else "Hints:"
        err_console.print(f"\n{heading}", markup=False)
        for h in error.hints:
            err_console.print(f"  - {h}", markup=False, soft_wrap=True)


def handle_errors(operation: str, hints: list[str]|None = None) -> Callable[[F], F]:
    """
    Turn gwsadmin errors (and raw API errors) raised by a command into a
    message on stderr and exit status 1.  Hints given here are added to
    API failures of this command.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except HttpError as e:
                error = ApiError(operation, e, hints)
            except ApiError as e:
                error = e
                if hints and not e.hints:
                    error.hints = list(hints)
            except GWSAdminError as e:
                error = e
            logger.debug("%s failed: %s", operation, error.message, exc_info=error)
            report_error(error)
            raise typer.Exit(code=1)
        return wrapper  # type: ignore[return-value]
    return decorator
