#!/usr/bin/env python3
"""
Receipt Relay - local HTTP print relay for ESC/POS receipt printers.

Runs the Flask app (threaded) with background print workers. Also offers a
couple of maintenance commands that reuse the same services without serving
HTTP: listing printers and printing the sample bill.
"""

import argparse
import logging
import os
import sys

from receipt_relay import build_services, create_app
from receipt_relay.core.config import get_config_path, load_app_config
from receipt_relay.core.logging import configure_logging
from receipt_relay.printing.jobs import JobStatus


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Receipt Relay print service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config.json (default: {get_config_path()})",
    )

    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind to (default: config host, 127.0.0.1)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: config http_port, 9100)",
    )

    parser.add_argument(
        "--backend",
        choices=["auto", "cups", "win32", "escpos"],
        default=None,
        help="Printer backend (default: config printer_backend)",
    )

    parser.add_argument(
        "--list-printers",
        action="store_true",
        help="Print the available printers and exit",
    )

    parser.add_argument(
        "--test-print",
        metavar="PRINTER",
        default=None,
        help="Print the sample bill on PRINTER and exit",
    )

    parser.add_argument(
        "--size",
        choices=["58mm", "80mm"],
        default="80mm",
        help="Paper width for --test-print (default: 80mm)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def _overrides(args) -> dict:
    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["http_port"] = args.port
    if args.backend:
        overrides["printer_backend"] = args.backend
    return overrides


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    logger = logging.getLogger("receipt_relay.cli")

    if args.config:
        os.environ["RECEIPTRELAY_CONFIG_PATH"] = args.config

    try:
        config = load_app_config(overrides=_overrides(args))
    except Exception as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    if args.list_printers or args.test_print:
        services = build_services(config)
        services.registry.refresh()
        if args.list_printers:
            printers = services.registry.list()
            if not printers:
                print("No printers found.")
            for p in printers:
                print(f"{p.name}\t{p.status}\t{p.unique_id}")
            return 0

        job = services.printer.submit_test_print(args.test_print, args.size)
        services.printer.process_pending()
        job = services.store.get(job.id) or job
        if job.status is JobStatus.SUCCESS:
            print(f"Sample bill sent to {job.printer_name}")
            return 0
        print(f"Test print failed: {job.error}", file=sys.stderr)
        return 1

    app = create_app(config=config)
    logger.info("Starting Receipt Relay on http://%s:%d", config.host, config.http_port)
    logger.info("Press Ctrl+C to stop the server")
    app.run(host=config.host, port=config.http_port, debug=False, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
