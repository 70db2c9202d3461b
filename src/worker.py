"""Periodic runner for the commerce maintenance sweeps.

Runs the event retry sweep and the escrow auto-release on a fixed
interval. Use ``--once`` from cron or a Kubernetes CronJob.

Usage:
    python src/worker.py                      # Loop forever, every 60 seconds
    python src/worker.py --interval 300       # Loop every five minutes
    python src/worker.py --once               # Run each sweep once and exit
    python src/worker.py --once --only events # Only the retry sweep
"""

import argparse
import asyncio
import os
import socket

import structlog

logger = structlog.get_logger(__name__)

SWEEPS = ("events", "escrows")


def _get_domain():
    from commerce.domain import commerce

    commerce.init()
    return commerce


def run_sweeps(domain, sweeps, worker_id):
    from commerce.escrow.auto_release import ReleaseDueEscrows
    from commerce.event_log.retry import run_retry_sweep
    from commerce.utils.logging import add_context, clear_context

    results = {}
    add_context(worker_id=worker_id)
    try:
        with domain.domain_context():
            if "events" in sweeps:
                results["events"] = run_retry_sweep(worker_id=worker_id)
            if "escrows" in sweeps:
                results["escrows"] = {"released": domain.process(ReleaseDueEscrows(), asynchronous=False)}
    finally:
        clear_context()
    return results


async def run(domain, sweeps, interval, worker_id):
    while True:
        try:
            run_sweeps(domain, sweeps, worker_id)
        except Exception:
            logger.exception("Maintenance sweep failed", worker_id=worker_id)
        await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Feyxa Commerce maintenance worker")
    parser.add_argument("--once", action="store_true", help="Run the sweeps once and exit")
    parser.add_argument("--interval", type=int, default=60, help="Seconds between sweeps (default: 60)")
    parser.add_argument(
        "--only",
        choices=SWEEPS,
        nargs="*",
        help="Specific sweep(s) to run (default: all)",
    )
    args = parser.parse_args()

    from commerce.utils.logging import configure_logging

    configure_logging()
    domain = _get_domain()
    sweeps = args.only or list(SWEEPS)
    worker_id = f"{socket.gethostname()}:{os.getpid()}"

    if args.once:
        results = run_sweeps(domain, sweeps, worker_id)
        logger.info("Maintenance sweeps complete", worker_id=worker_id, **results)
        return

    asyncio.run(run(domain, sweeps, args.interval, worker_id))


if __name__ == "__main__":
    main()
