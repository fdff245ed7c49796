"""Command-line interface for copilot-usage.

This module provides the main entry point and argument parsing for the
copilot-usage CLI tool.
"""

import argparse
import os
import platform
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional

from copilot_usage._version import __version__
from copilot_usage.display.colors import Colors, disable_colors
from copilot_usage.errors import (
    ConfigError,
    CopilotUsageError,
    format_error_for_user,
    get_exit_code,
)


def positive_int(value: str) -> int:
    """argparse type for counts of minutes or seconds, which must be above zero."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    from copilot_usage.config.settings import THEME_NAMES

    parser = argparse.ArgumentParser(
        prog="copilot-usage",
        description="Monitor GitHub Copilot premium request usage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  copilot-usage                   Interactive dashboard
  copilot-usage --refresh         Dashboard, ignoring a fresh cache
  copilot-usage --theme nord      Dashboard with the Nord theme
  copilot-usage --waybar          One line of waybar JSON
  copilot-usage --line --format "{used}/{limit}"
                                  One plain status line
  copilot-usage --cache-status    Show cache freshness
  copilot-usage --clear-cache     Delete cached usage data
  copilot-usage --config          Show current configuration
  copilot-usage --config set token github_pat_...
  copilot-usage --log             Write an event log while running
  copilot-usage --show-log 20     Show the last 20 logged events

Setup:
  Create a fine-grained GitHub token with the "Plan: read" account
  permission and store it with --config set token, or export
  COPILOT_USAGE_TOKEN.
""",
    )

    parser.add_argument(
        "--refresh",
        "-r",
        action="store_true",
        help="Fetch fresh data even if the cache is still valid",
    )
    parser.add_argument(
        "--theme",
        choices=THEME_NAMES,
        metavar="NAME",
        help=f"Dashboard theme for this session ({', '.join(THEME_NAMES)})",
    )
    parser.add_argument(
        "--waybar",
        "-w",
        action="store_true",
        help="Print one line of waybar JSON and exit",
    )
    parser.add_argument(
        "--line",
        "-l",
        action="store_true",
        help="Print one plain status line and exit",
    )
    parser.add_argument(
        "--format",
        "-f",
        metavar="TEMPLATE",
        help="Status line template: {percentage} {used} {limit} {remaining}",
    )
    parser.add_argument(
        "--cache-status",
        action="store_true",
        help="Show cache freshness and exit",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete the cached usage data and exit",
    )
    parser.add_argument(
        "--config",
        "-c",
        nargs="*",
        metavar="COMMAND",
        help="Configuration commands: show (default), reset, set KEY VALUE",
    )
    parser.add_argument(
        "--cache-ttl",
        type=positive_int,
        metavar="MINUTES",
        help="Cache TTL in minutes (default: 5)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_int,
        metavar="SECONDS",
        help="API request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--no-auto-refresh",
        action="store_true",
        help="Only refresh the dashboard when r is pressed",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--log",
        nargs="?",
        const="",
        metavar="FILE",
        help="Write a JSON-lines event log (default: ~/.local/state/copilot-usage/events.log)",
    )
    parser.add_argument(
        "--show-log",
        nargs="?",
        const=50,
        type=positive_int,
        metavar="N",
        help="Show the last N event log entries (default: 50)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show error details",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version and system information",
    )

    return parser


def print_version() -> None:
    """Print version and system information."""
    print(
        f"copilot-usage {__version__} "
        f"(Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}, "
        f"{platform.system()} {platform.machine()})"
    )


def resolve_ttl(cli_minutes: Optional[int], config: dict) -> timedelta:
    """Cache TTL from --cache-ttl, then COPILOT_USAGE_CACHE_TTL, then the config file.

    A config value that is not a positive number falls back to the default.

    Raises:
        ConfigError: If ``cli_minutes`` is zero or negative.
    """
    from copilot_usage.api import cache as cache_module

    if cli_minutes is not None:
        if cli_minutes <= 0:
            raise ConfigError(f"Cache TTL must be greater than 0 minutes, got {cli_minutes}")
        return timedelta(minutes=cli_minutes)
    env_minutes = cache_module.env_ttl_minutes()
    if env_minutes is not None:
        return timedelta(minutes=env_minutes)
    minutes = config.get("cache_ttl_minutes")
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or minutes <= 0:
        minutes = cache_module.CACHE_TTL_MINUTES
    return timedelta(minutes=minutes)


def show_config(config: dict) -> None:
    """Display current configuration."""
    from copilot_usage.config.credentials import TOKEN_ENV_VARS, mask_token
    from copilot_usage.config.settings import CONFIG_FILE

    print()
    print(f"{Colors.BOLD}{Colors.CYAN}Current Configuration{Colors.RESET}")
    print()

    env_var = next((var for var in TOKEN_ENV_VARS if os.environ.get(var)), None)
    if env_var:
        print(f"  Token:            {Colors.GREEN}From ${env_var}{Colors.RESET}")
    elif config.get("token"):
        print(
            f"  Token:            {Colors.GREEN}Configured{Colors.RESET} "
            f"({mask_token(config['token'])})"
        )
    else:
        print(f"  Token:            {Colors.RED}Not configured{Colors.RESET}")

    username = config.get("username")
    print(f"  Username:         {username or Colors.DIM + 'from token' + Colors.RESET}")
    print(f"  Theme:            {config.get('theme')}")
    print(f"  Monthly Limit:    {config.get('monthly_limit')}")
    print(f"  Cache TTL:        {config.get('cache_ttl_minutes')} min")
    print(f"  Timeout:          {config.get('timeout')} s")
    print(f"  Status Format:    {config.get('waybar_format')}")
    print()
    print(f"  Config File:      {CONFIG_FILE}")
    print()


def handle_config_command(config_args: list, config: dict) -> None:
    """Handle configuration subcommands.

    Args:
        config_args: List of config command arguments.
        config: Currently loaded configuration.

    Raises:
        ConfigError: If ``set`` is given an invalid key or value.
    """
    from copilot_usage.config.credentials import validate_token_format
    from copilot_usage.config.settings import DEFAULT_CONFIG, reset_config, set_config_value

    # Handle empty list (just --config with no args) as "show"
    if len(config_args) == 0 or config_args[0] == "show":
        show_config(config)
    elif config_args[0] == "reset":
        reset_config()
        print(f"{Colors.GREEN}Configuration reset to defaults.{Colors.RESET}")
    elif config_args[0] == "set":
        if len(config_args) != 3:
            print(f"{Colors.RED}Error: 'set' requires KEY and VALUE arguments{Colors.RESET}")
            print("Usage: copilot-usage --config set KEY VALUE")
            print(f"\nValid keys: {', '.join(sorted(DEFAULT_CONFIG.keys()))}")
            sys.exit(1)
        key = config_args[1]
        updated = set_config_value(key, config_args[2])
        shown = "<hidden>" if key == "token" and updated[key] else updated[key]
        print(f"{Colors.GREEN}Set {key} = {shown}{Colors.RESET}")
        if key == "token" and updated[key]:
            valid, problem = validate_token_format(updated[key])
            if not valid:
                print(
                    f"{Colors.YELLOW}Warning: {problem}. GitHub may reject it.{Colors.RESET}",
                    file=sys.stderr,
                )
    else:
        print(f"{Colors.RED}Error: Unknown config command '{config_args[0]}'{Colors.RESET}")
        print("Available commands: show, reset, set KEY VALUE")
        sys.exit(1)


def show_cache_status(store, ttl: timedelta) -> None:
    """Print what the cache slot holds and whether it is still fresh."""
    from copilot_usage.display.progress import format_percentage, make_progress_bar
    from copilot_usage.utils.time import format_absolute_time, format_age, utc_now

    now = utc_now()
    info = store.describe(ttl, now=now)

    print()
    print(f"{Colors.BOLD}{Colors.CYAN}Cache Status{Colors.RESET}")
    print()
    print(f"  Cache File:       {store.path}")
    if info.last_updated is None:
        print(f"  Last Updated:     {Colors.DIM}Never{Colors.RESET}")
    else:
        print(
            f"  Last Updated:     {format_absolute_time(info.last_updated)} "
            f"({format_age(now - info.last_updated)})"
        )
        if info.is_fresh:
            print(f"  Status:           {Colors.GREEN}Fresh{Colors.RESET}")
        else:
            print(f"  Status:           {Colors.YELLOW}Stale{Colors.RESET}")
    print(f"  TTL:              {int(ttl.total_seconds() // 60)} min")

    entry = store.load()
    if entry is not None:
        percentage = entry.snapshot.percentage
        print(f"  Usage:            {make_progress_bar(percentage)} {format_percentage(percentage)}")
    print()


def show_event_log(limit: int, log_path: Optional[Path] = None) -> None:
    """Print the most recent event log entries, newest first."""
    from copilot_usage.config.eventlog import EVENT_LOG_FILE, read_event_log

    path = log_path or EVENT_LOG_FILE
    if not path.exists():
        print(f"{Colors.YELLOW}No event log found at {path}{Colors.RESET}")
        print("Use --log to write one.")
        return

    entries = read_event_log(limit=limit, log_path=path)
    if not entries:
        print(f"{Colors.DIM}No event log entries found.{Colors.RESET}")
        return

    print()
    print(f"{Colors.BOLD}{Colors.CYAN}Event Log{Colors.RESET} ({len(entries)} entries)")
    print(f"{Colors.DIM}{'─' * 70}{Colors.RESET}")
    for entry in entries:
        timestamp = str(entry.get("timestamp", ""))[:19]
        event = entry.get("event", "unknown")
        color = Colors.RED if entry.get("success", True) is False else Colors.GREEN
        print(
            f"{Colors.DIM}{timestamp}{Colors.RESET}  "
            f"{color}{event:<20}{Colors.RESET} {entry.get('message', '')}"
        )
    print()


def _report_error(error: Exception, verbose: bool) -> None:
    print(f"{Colors.RED}{format_error_for_user(error, verbose=verbose)}{Colors.RESET}", file=sys.stderr)
    if isinstance(error, CopilotUsageError) and error.get_suggestion() and not verbose:
        print(f"{Colors.YELLOW}Suggestion: {error.get_suggestion()}{Colors.RESET}", file=sys.stderr)


def main(argv: Optional[list] = None) -> None:
    """Main entry point for copilot-usage CLI.

    This function is the primary entry point when installed via pip/pipx/uv.
    It parses arguments and dispatches to the appropriate handler.
    """
    from copilot_usage.api.cache import CacheStore
    from copilot_usage.api.client import UsageFetcher
    from copilot_usage.config.credentials import get_credentials
    from copilot_usage.config.eventlog import (
        Event,
        disable_event_log,
        enable_event_log,
        log_event,
    )
    from copilot_usage.config.settings import load_config, save_config
    from copilot_usage.errors import SetupRequiredError

    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle --no-color flag
    if args.no_color:
        disable_colors()

    # Handle --version flag
    if args.version:
        print_version()
        return

    # Handle --show-log flag
    if args.show_log is not None:
        show_event_log(args.show_log, Path(args.log) if args.log else None)
        return

    export_mode = args.waybar or args.line

    # Handle --log flag
    if args.log is not None:
        enable_event_log(Path(args.log) if args.log else None)

    try:
        config = load_config(silent=export_mode)

        # Handle --config flag
        if args.config is not None:
            handle_config_command(args.config, config)
            return

        ttl = resolve_ttl(args.cache_ttl, config)
        store = CacheStore()

        # Handle --cache-status flag
        if args.cache_status:
            show_cache_status(store, ttl)
            return

        # Handle --clear-cache flag
        if args.clear_cache:
            store.invalidate()
            log_event(Event.CACHE_INVALIDATE, "Cache cleared", details={"path": str(store.path)})
            print(f"{Colors.GREEN}Cache cleared.{Colors.RESET}")
            return

        fetcher = UsageFetcher(
            monthly_limit=config["monthly_limit"],
            timeout=args.timeout or config["timeout"],
        )
        try:
            credentials = get_credentials(config)
        except SetupRequiredError:
            if not export_mode:
                raise
            credentials = None

        # Handle --waybar / --line
        if export_mode:
            from copilot_usage.export import run_export

            exit_code = run_export(
                store,
                fetcher,
                credentials,
                ttl,
                template=args.format or config["waybar_format"],
                force=args.refresh,
                waybar=args.waybar,
            )
            sys.exit(exit_code)

        from copilot_usage.display.loop import run_dashboard
        from copilot_usage.refresh import RefreshCoordinator

        coordinator = RefreshCoordinator(
            store,
            fetcher,
            credentials,
            ttl,
            auto_refresh=not args.no_auto_refresh,
        )

        def _save_theme(name: str) -> None:
            config["theme"] = name
            try:
                save_config(config)
            except OSError as e:
                log_event(Event.CONFIG_WRITE, f"Could not save theme: {e}", success=False)

        coordinator.start(force=args.refresh)
        try:
            run_dashboard(
                coordinator,
                args.theme or config["theme"],
                ttl,
                on_theme_change=_save_theme,
                use_color=not args.no_color,
            )
        except KeyboardInterrupt:
            pass
    except CopilotUsageError as e:
        _report_error(e, args.verbose)
        sys.exit(get_exit_code(e))
    finally:
        disable_event_log()


__all__ = [
    "create_parser",
    "main",
    "positive_int",
    "print_version",
    "resolve_ttl",
    "show_config",
    "show_cache_status",
    "show_event_log",
    "handle_config_command",
]
