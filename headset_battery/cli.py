#!/usr/bin/env python3
"""Command-line interface for the headset battery status bar module."""

import sys
import signal
import logging
import argparse

from headset_battery.config import (
    enabled_providers, failure_threshold, kind_names, load_config,
    parse_duration, parse_kinds,
)
from headset_battery.core.formatter import StatusFormatter
from headset_battery.core.manager import DeviceManager
from headset_battery.core.monitor import BatteryMonitor
from headset_battery.core.types import StatusRecord
from headset_battery.exceptions import (
    ConfigError, ProviderUnavailableError, SubscriptionError,
)
from headset_battery.providers.upower import UPowerProvider
from headset_battery.providers.sysfs import SysfsProvider

log = logging.getLogger("headset_battery")

_PROVIDERS = {
    "upower": UPowerProvider,
    "sysfs": SysfsProvider,
}


def _create_manager(provider_names, kinds) -> DeviceManager:
    """Create a DeviceManager with the requested providers."""
    mgr = DeviceManager()
    for name in provider_names:
        mgr.register_provider(_PROVIDERS[name](kinds=kinds))
    return mgr


def _write_record(record: StatusRecord) -> None:
    sys.stdout.write(record.to_json() + "\n")
    sys.stdout.flush()


def _build_parser(config: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="headset-battery",
        description="Headset battery level for waybar-style status bars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  %(prog)s                       Print one status line and exit
  %(prog)s --listen              Print a line whenever the status changes
  %(prog)s --listen -r 1m        Also re-check every minute
  %(prog)s -k headset,speakers   Report on other device kinds
""",
    )
    parser.add_argument(
        "--kinds", "-k", default=config["kinds"],
        help=f"Device kinds to match, comma separated. Possible values: {kind_names()}",
    )
    parser.add_argument(
        "--low-class", default=config["low_class"],
        help="CSS class returned when the battery is at or below --low-percentage",
    )
    parser.add_argument(
        "--low-percentage", "-l", type=float, default=config["low_percentage"],
        help="Percentage at or below which --low-class is used (default: %(default)s)",
    )
    parser.add_argument("--listen", action="store_true", help="Run continuously")
    parser.add_argument(
        "--refresh", "-r", default=config["refresh"],
        help="How often to refresh without device events, e.g. 15s, 1m30s; 0 disables "
             "(default: %(default)s)",
    )
    parser.add_argument(
        "--provider", action="append", choices=sorted(_PROVIDERS), default=None,
        help="Battery source to use, may be repeated (default: from config)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")
    return parser


def main(argv=None):
    config = load_config()
    parser = _build_parser(config)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        kinds = parse_kinds(args.kinds)
        interval = parse_duration(args.refresh)
        if not isinstance(args.low_class, str):
            raise ConfigError(f"low_class must be a string, got {args.low_class!r}")
        formatter = StatusFormatter(args.low_percentage, args.low_class)
        threshold = failure_threshold(config)
        provider_names = args.provider or enabled_providers(config, _PROVIDERS)
    except ConfigError as e:
        parser.error(str(e))

    if not provider_names:
        parser.error("no battery provider enabled")

    mgr = _create_manager(provider_names, kinds)
    monitor = BatteryMonitor(
        mgr,
        formatter,
        _write_record,
        interval=interval or None,
        failure_threshold=threshold,
    )

    try:
        if not args.listen:
            try:
                monitor.run_once()
            except ProviderUnavailableError as e:
                log.error("Could not read battery status: %s", e)
                return 1
            return 0

        def _shutdown(signum, frame):
            log.debug("Received signal %d, stopping", signum)
            monitor.stop()

        previous = {
            signum: signal.signal(signum, _shutdown)
            for signum in (signal.SIGTERM, signal.SIGINT)
        }
        try:
            monitor.run()
        except SubscriptionError as e:
            log.error("Cannot listen for device changes: %s", e)
            return 1
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
    finally:
        mgr.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
