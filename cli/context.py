"""
Shared CLI context for the storefront commands.
"""

import functools
import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Optional

import click

from admission.core import AdmissionChecker
from registry.concurrency import ConcurrencyError
from registry.exceptions import RegistryError, RejectionError
from registry.manager import CollectionManager
from registry.schema import normalize_address
from registry.storage import StorageError

from .config import ConfigurationManager
from .output import OutputFormatter


LOGGER_NAMES = ('storefront-cli', 'registry', 'admission')


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.data_dir: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('storefront-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }
        level = log_levels[min(self.verbose, 2)]

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        for name in LOGGER_NAMES:
            logger = logging.getLogger(name)
            # Replace handlers from a previous invocation; they may hold a stale stream
            for handler in list(logger.handlers):
                logger.removeHandler(handler)

            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(level)

    def load_config(self):
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        self.config_manager.load()

        if self.output_format is None:
            self.output_format = self.get_config('cli.output_format', 'table')
        if not self.verbose:
            self.verbose = int(self.get_config('cli.verbose', 0) or 0)

    def get_config(self, key: str, default: Any = None) -> Any:
        if self.config_manager is None:
            return default
        return self.config_manager.get(key, default)

    def get_data_dir(self) -> Path:
        return Path(self.data_dir or self.get_config('storefront.data_dir')).expanduser()

    def resolve_account(self, account: Optional[str]) -> str:
        """Resolve the caller address from --from or storefront.account."""
        account = account or self.get_config('storefront.account')
        if not account:
            raise click.UsageError("No account given; pass --from or set storefront.account")
        return normalize_address(account)

    def create_checker(self) -> AdmissionChecker:
        return AdmissionChecker({
            'require_whitelist': bool(self.get_config('storefront.require_whitelist', True))
        })

    def open_collection(self) -> CollectionManager:
        """Open the collection stored in the configured data directory."""
        data_dir = self.get_data_dir()
        self.logger.debug(f"Opening collection in {data_dir}")
        return CollectionManager.open(
            data_dir,
            checker=self.create_checker(),
            lock_timeout=float(self.get_config('storefront.lock_timeout', 30.0))
        )

    def output(self, data: Any, format_override: Optional[str] = None):
        """Output data in the selected format."""
        formatter = OutputFormatter(format_override or self.output_format or 'table')
        click.echo(formatter.format(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator to report storefront errors without a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except RejectionError as e:
            click.echo(f"Transaction rejected: {e}", err=True)
            _show_traceback()
            sys.exit(1)
        except (RegistryError, StorageError, ConcurrencyError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            _show_traceback()
            sys.exit(1)

    return wrapper


def _show_traceback():
    ctx = click.get_current_context(silent=True)
    cli_ctx = ctx.find_object(CLIContext) if ctx else None

    if cli_ctx and cli_ctx.verbose >= 2:
        click.echo(traceback.format_exc(), err=True)
    else:
        click.echo("Use -vv for detailed error information.", err=True)
