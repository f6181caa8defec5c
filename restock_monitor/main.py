from __future__ import annotations

import logging

import requests

from . import config, monitor, scraper, webhook
from .notifier import DiscordNotifier
from .scheduler import Scheduler
from .state import StatusStore
from .utils import HTTPError


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_scheduler(
    targets: list[scraper.Target],
    store: StatusStore,
    notifier: DiscordNotifier,
) -> Scheduler:
    def tick() -> None:
        monitor.run_cycle(
            targets,
            store,
            notifier,
            concurrency=config.CONCURRENCY,
            timeout=config.FETCH_TIMEOUT_SECONDS,
        )

    return Scheduler(tick, config.POLL_INTERVAL_SECONDS, name="restock-monitor")


def main() -> None:
    """Start the webhook server and run the monitoring loop in the foreground."""
    config.validate()
    setup_logging()
    logger = logging.getLogger(__name__)

    targets = scraper.load_targets(config.TARGETS_FILE)
    store = StatusStore.load(config.STATE_FILE)
    notifier = DiscordNotifier(config.DISCORD_TOKEN, config.ALERT_CHANNEL_ID)

    server = webhook.start_server(notifier, host=config.WEBHOOK_HOST, port=config.PORT)

    scheduler = None
    try:
        try:
            me = notifier.whoami()
            logger.info("Logged in as %s", me.get("username") or me.get("id"))
            notifier.resolve_channel()
        except (requests.RequestException, HTTPError):
            # Monitoring cannot start; the webhook keeps serving and
            # resolves the channel per request.
            logger.exception("Could not start monitoring loop.")
            server.join()
            return

        logger.info(
            "Monitoring %d targets (interval=%ss, concurrency=%d)...",
            len(targets), config.POLL_INTERVAL_SECONDS, config.CONCURRENCY,
        )
        scheduler = build_scheduler(targets, store, notifier)
        scheduler.run_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
    finally:
        if scheduler is not None:
            scheduler.stop()
        server.stop()
        notifier.close()


if __name__ == "__main__":
    main()
