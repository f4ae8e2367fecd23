"""
CLI Module

Architectural Intent:
- Command-line interface acting as a minimal kitchen host
- Loads and saves the per-instance state around each driver call
- Delegates to the driver, which delegates to the use cases via the
  composition root
- Supports --verbose/--debug flags for log level control
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from typing import Optional, Sequence
from linode_kitchen.composition_root import create_container
from linode_kitchen.domain.exceptions import LinodeKitchenError
from linode_kitchen.domain.value_objects.host_instance import HostInstance
from linode_kitchen.domain.value_objects.instance_handle import PASSWORD_KEY
from linode_kitchen.infrastructure.config import load_config, validate_config
from linode_kitchen.infrastructure.logging import configure_logging, level_from_name
from linode_kitchen.infrastructure.repositories.state_repository import JsonStateRepository
from linode_kitchen.presentation.driver.linode_driver import LinodeDriver

DEFAULT_STATE_DIR = ".kitchen"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linode-kitchen",
        description="Provision and tear down Linode instances for kitchen test runs",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to linode-kitchen.json"
    )
    parser.add_argument(
        "--state-dir", default=DEFAULT_STATE_DIR, help="Directory holding instance state files"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Write log records as JSON lines"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create", help="Create a Linode for an instance")
    create_parser.add_argument("instance", help="Kitchen instance name")
    create_parser.add_argument(
        "--platform", "-p", default=None, help="Platform name, used as the default image"
    )
    create_parser.add_argument(
        "--no-bourne-shell",
        dest="bourne_shell",
        action="store_false",
        help="Skip post-boot setup commands (non-Bourne shell images)",
    )

    destroy_parser = subparsers.add_parser("destroy", help="Destroy an instance's Linode")
    destroy_parser.add_argument("instance", help="Kitchen instance name")
    destroy_parser.add_argument("--platform", "-p", default=None, help="Platform name")

    show_parser = subparsers.add_parser("show", help="Show an instance's stored state")
    show_parser.add_argument("instance", help="Kitchen instance name")

    return parser


def _fail(message: str, debug: bool) -> None:
    print(f"[-] {message}")
    if debug:
        traceback.print_exc()
    sys.exit(1)


async def async_main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    config = load_config(args.config)

    # Configure logging based on flags
    json_format = args.json_logs or config.log_format == "json"
    if args.debug:
        configure_logging(level=logging.DEBUG, json_format=json_format)
    elif args.verbose:
        configure_logging(level=logging.INFO, json_format=json_format)
    else:
        configure_logging(level=level_from_name(config.log_level), json_format=json_format)

    repository = JsonStateRepository(args.state_dir)
    try:
        state = repository.load(args.instance)
    except ValueError as e:
        _fail(f"Unreadable state for {args.instance}: {e}", args.debug)

    if args.command == "show":
        shown = dict(state)
        if shown.get(PASSWORD_KEY):
            shown[PASSWORD_KEY] = "********"
        print(json.dumps(shown, indent=2, sort_keys=True))
        return

    try:
        validate_config(config)
        container = create_container(config)
        instance = HostInstance(
            name=args.instance,
            platform_name=args.platform or config.instance.image or args.instance,
            bourne_shell=getattr(args, "bourne_shell", True),
        )
    except (LinodeKitchenError, ValueError) as e:
        _fail(f"Configuration error: {e}", args.debug)

    await container.exporter.initialize()
    driver = LinodeDriver(config, instance, container)

    if args.command == "create":
        print(f"[*] Creating Linode for {instance}...")
        try:
            handle = await driver.create(state)
        except LinodeKitchenError as e:
            _fail(f"Create Failed: {e}", args.debug)
        finally:
            repository.save(args.instance, state)
            await container.exporter.export()
        print(f"[+] Linode {handle} ready at {handle.hostname}.")

    elif args.command == "destroy":
        print(f"[*] Destroying Linode for {instance}...")
        try:
            await driver.destroy(state)
        except LinodeKitchenError as e:
            repository.save(args.instance, state)
            _fail(f"Destroy Failed: {e}", args.debug)
        finally:
            await container.exporter.export()
        if state:
            repository.save(args.instance, state)
        else:
            repository.delete(args.instance)
        print(f"[+] Linode for {instance} destroyed.")


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
