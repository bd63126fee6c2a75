#!/usr/bin/env python3
"""
Command line entry point for the homelab installer.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .exceptions import HomelabError
from .distribution import resolve_distribution
from .models import HomelabConfig, InstallationOutcome, load_homelab_config
from .recovery import RunContext
from .services import InstallationOrchestrator, InstallationReport, ServiceFactory
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def print_report(report: InstallationReport) -> None:
    """Print installed services and where to reach them."""
    print(f"\n✅ Installed {len(report.installed)} service(s)")
    for name, url in report.access_urls.items():
        print(f"  • {name}: {url}")


async def run_install(config: HomelabConfig, factory: Optional[ServiceFactory] = None,
                      context: Optional[RunContext] = None) -> int:
    """Install every core and selected service.

    Returns the exit code for a successful or cancelled run. A failed run
    unwinds completed steps and raises SystemExit.
    """
    context = context or RunContext.create()
    orchestrator = InstallationOrchestrator(factory or ServiceFactory(), context)

    context.cancellation.install_signal_handlers()
    try:
        report = await orchestrator.run(config)
    except Exception as e:
        context.error_handler.handle_error(e)
        print(f"\n❌ Installation failed: {e}")
        await context.error_handler.graceful_shutdown(e, exit_code=EXIT_FAILURE)
    finally:
        context.cancellation.remove_signal_handlers()

    if report.outcome == InstallationOutcome.CANCELLED:
        print(f"\n❌ Installation cancelled, rolled back {len(report.installed)} service(s)")
        return EXIT_CANCELLED

    print_report(report)
    return EXIT_SUCCESS


def list_services(factory: ServiceFactory) -> int:
    print("Core services (always installed):")
    for service_type in factory.get_core_services():
        print(f"  • {service_type.value} ({factory.catalog[service_type].name})")

    print("\nOptional services:")
    for service_type in factory.get_optional_services():
        spec = factory.catalog[service_type]
        line = f"  • {service_type.value} ({spec.name})"
        if spec.dependencies:
            line += f" - expects {', '.join(d.value for d in spec.dependencies)}"
        if spec.required_credentials:
            line += f" - needs {', '.join(spec.required_credentials)}"
        print(line)
    return EXIT_SUCCESS


def show_urls(config: HomelabConfig, factory: ServiceFactory) -> int:
    for service in factory.get_installation_order(factory.create_services(config)):
        print(f"{service.name}: {service.get_access_url()}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="homelab",
        description="Install a set of self-hosted services on this host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  homelab services                      # List installable services
  homelab urls -c homelab.yml           # Show where services will be reachable
  homelab install -c homelab.yml        # Install core and selected services
        """
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--structured", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="Install core and selected services")
    install.add_argument("-c", "--config", required=True, help="YAML file describing the installation")

    subparsers.add_parser("services", help="List installable services")

    urls = subparsers.add_parser("urls", help="Show access URLs for a configuration")
    urls.add_argument("-c", "--config", required=True, help="YAML file describing the installation")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, structured=args.structured or None)

    if args.command == "services":
        return list_services(ServiceFactory())

    try:
        config = load_homelab_config(args.config)
        if args.command == "urls":
            return show_urls(config, ServiceFactory())

        distribution = resolve_distribution(config.distribution)
        logger.info(f"Host distribution: {distribution.value}")
    except HomelabError as e:
        print(f"❌ {e.message}")
        return EXIT_FAILURE

    return asyncio.run(run_install(config))


if __name__ == "__main__":
    sys.exit(main())
