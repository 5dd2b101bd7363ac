#!/usr/bin/env python3
"""
Autoscaling Buffer Controller - Entry Point

Keeps a low-priority buffer deployment in the cluster, sized from the
allocatable memory of a worker node, so that the cluster autoscaler adds a
node before real workloads need it.

Usage:
    python run.py [--namespace NAMESPACE] [--dry-run] [--in-cluster] [--once]
"""

import argparse
import logging
import sys

from kubernetes import config

from buffer_controller.config import (
    DEFAULT_NAMESPACE,
    RECONCILE_INTERVAL_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
)
from buffer_controller.controller import BufferController

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Autoscaling Buffer Controller - Keep a preemptible buffer pod for the cluster autoscaler"
    )
    parser.add_argument(
        "--namespace", "-n",
        default=DEFAULT_NAMESPACE,
        help=f"Namespace of the buffer deployment (default: {DEFAULT_NAMESPACE})"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run in dry-run mode (no changes made)"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Reconcile once and exit"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=RECONCILE_INTERVAL_SECONDS,
        help=f"Seconds between reconciliations (default: {RECONCILE_INTERVAL_SECONDS})"
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=REQUEST_TIMEOUT_SECONDS,
        help=f"Timeout for each API request in seconds (default: {REQUEST_TIMEOUT_SECONDS})"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    args = parser.parse_args()

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load Kubernetes configuration
    try:
        if args.in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster configuration")
        else:
            config.load_kube_config()
            logger.info("Loaded kubeconfig from default location")
    except Exception as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    controller = BufferController(
        namespace=args.namespace,
        dry_run=args.dry_run,
        interval=args.interval,
        request_timeout=args.request_timeout,
    )

    if args.once:
        sys.exit(0 if controller.run_once() else 1)

    try:
        controller.run()
    except Exception as e:
        logger.error(f"Controller error: {e}")
        sys.exit(1)
    logger.info("Controller stopped")


if __name__ == "__main__":
    main()
