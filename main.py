"""
Booking engine entry point.

Runs the offline console demo, or prints the effective configuration.

Usage:
    Console demo:   python main.py console [--scenario booking|contention|calendar]
    Show settings:  python main.py config
"""

import logging
import sys

from booking_engine.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Start the offline console demo."""
    from console_demo import main as console_main

    sys.argv = [sys.argv[0], *sys.argv[2:]]
    console_main()


def _show_config() -> None:
    print(f"app:               {settings.app_name}")
    print(f"shop timezone:     {settings.scheduling.shop_timezone}")
    print(f"slot step:         {settings.scheduling.slot_step_minutes} min")
    print(f"calendar step:     {settings.scheduling.calendar_step_minutes} min")
    print(f"default duration:  {settings.scheduling.default_service_duration} min")
    print(f"hold TTL:          {settings.holds.ttl_minutes} min")
    print(f"sweep interval:    {settings.holds.sweep_interval_seconds:g} s")


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "console"
    if mode == "config":
        _show_config()
    elif mode == "console":
        _run_console_mode()
    else:
        logger.error("Unknown mode %r, expected 'console' or 'config'", mode)
        sys.exit(2)
