"""
Reminder Job: periodic escalation of pending reviews.

Each tick:
1. Lists every pending review (a snapshot)
2. Computes how long each has been waiting
3. Reads live engagement (👀 reactions) from Slack
4. Evaluates the escalation policy
5. Posts a threaded reminder when the policy says so

Reviews are processed independently and concurrently, up to a cap. A
failure on one review is logged and counted; the rest of the batch
carries on. There is no cooldown: a review past a threshold is reminded on
every tick until it is approved.

Production ticks daily at 09:00 with 1-day / 3-day thresholds. Every other
environment uses a fast profile (7s tick, 10s / 20s thresholds) for trying
the bot out.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Sequence

import httpx

from ..core.config import Settings, get_settings
from ..services.engagement import EngagementResolver
from ..services.escalation_policy import EscalationPolicy
from ..services.reminder_dispatcher import ReminderDispatcher
from ..services.review_state import Review
from ..services.review_store import ReviewStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class ReminderConfig:
    """Tick interval and escalation thresholds."""

    interval: timedelta
    start_after: timedelta
    channel_after: timedelta

    # Wall-clock time (UTC) of the first tick; None starts right away
    run_at: time | None = None

    # Reviews processed at once, to stay under Slack rate limits
    max_concurrency: int = 5

    @classmethod
    def production(cls) -> "ReminderConfig":
        return cls(
            interval=timedelta(days=1),
            start_after=timedelta(days=1),
            channel_after=timedelta(days=3),
            run_at=time(9, 0),
        )

    @classmethod
    def fast(cls) -> "ReminderConfig":
        return cls(
            interval=timedelta(seconds=7),
            start_after=timedelta(seconds=10),
            channel_after=timedelta(seconds=20),
        )

    @classmethod
    def from_settings(cls, settings: Settings, profile: str = "auto") -> "ReminderConfig":
        """
        Pick a profile, then apply explicit REMINDER_* overrides.

        `profile` is "production", "fast", or "auto" to choose from the environment.
        """
        if profile == "production":
            config = cls.production()
        elif profile == "fast":
            config = cls.fast()
        elif profile == "auto":
            config = cls.production() if settings.is_production else cls.fast()
        else:
            raise ValueError(f"Unknown reminder profile: {profile}")

        if settings.reminder_interval is not None:
            config.interval = settings.reminder_interval
        if settings.reminder_start_after is not None:
            config.start_after = settings.reminder_start_after
        if settings.reminder_channel_after is not None:
            config.channel_after = settings.reminder_channel_after
        if settings.reminder_run_at is not None:
            config.run_at = settings.reminder_run_at
        config.max_concurrency = settings.reminder_max_concurrency
        return config

    def policy(self) -> EscalationPolicy:
        return EscalationPolicy(start_after=self.start_after, channel_after=self.channel_after)


@dataclass
class TickResult:
    """Summary of one tick."""
    started_at: datetime
    pending: int = 0
    notified: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
    webhook_url: str | None = None,
) -> None:
    """
    Raise an alert when a whole tick fails.

    Always logs; also posts to a Slack incoming webhook when one is configured.
    """
    log_message = f"[REMINDER ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    if not webhook_url:
        return

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"🚨 {title}", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message},
        },
    ]
    if details:
        details_text = "\n".join([f"• *{k}*: {v}" for k, v in details.items()])
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": details_text},
        })

    try:
        async with httpx.AsyncClient() as client:
            await client.post(webhook_url, json={"blocks": blocks}, timeout=10)
    except httpx.HTTPError as e:
        logger.error(f"Failed to send Slack alert: {e}")


# =============================================================================
# SCHEDULER
# =============================================================================


class EscalationScheduler:
    """
    Drives reminder ticks on a fixed interval.

    The clock is injected so tests can move time without sleeping.
    """

    def __init__(
        self,
        store: ReviewStore,
        resolver: EngagementResolver,
        policy: EscalationPolicy,
        dispatcher: ReminderDispatcher,
        interval: timedelta,
        clock: Callable[[], datetime] = utcnow,
        max_concurrency: int = 5,
        run_at: time | None = None,
        alert_webhook_url: str | None = None,
    ):
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.store = store
        self.resolver = resolver
        self.policy = policy
        self.dispatcher = dispatcher
        self.interval = interval
        self.clock = clock
        self.run_at = run_at
        self.alert_webhook_url = alert_webhook_url
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls,
        config: ReminderConfig,
        store: ReviewStore,
        resolver: EngagementResolver,
        dispatcher: ReminderDispatcher,
        **kwargs: Any,
    ) -> "EscalationScheduler":
        return cls(
            store=store,
            resolver=resolver,
            policy=config.policy(),
            dispatcher=dispatcher,
            interval=config.interval,
            max_concurrency=config.max_concurrency,
            run_at=config.run_at,
            **kwargs,
        )

    # =========================================================================
    # TICK
    # =========================================================================

    async def run_tick(self) -> TickResult:
        """Evaluate every pending review once."""
        result = TickResult(started_at=self.clock())
        logger.info("Running reminder system")

        try:
            reviews = await self.store.list_pending()
        except Exception as e:
            await send_alert(
                title="Reminder Tick Failed",
                message="Could not list pending reviews; no reminders were sent.",
                severity="critical",
                details={"error": str(e), "started_at": result.started_at.isoformat()},
                webhook_url=self.alert_webhook_url,
            )
            raise

        result.pending = len(reviews)
        outcomes = await asyncio.gather(
            *(self._process_bounded(review, result) for review in reviews)
        )
        for outcome in outcomes:
            if outcome is True:
                result.notified += 1
            elif outcome is None:
                result.skipped += 1
            else:
                result.failed += 1

        logger.info(
            f"Reminder tick done: {result.pending} pending, {result.notified} notified, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    async def _process_bounded(self, review: Review, result: TickResult) -> bool | None:
        async with self._semaphore:
            try:
                return await self._process(review)
            except Exception as e:
                # Per-review failures stay with that review
                logger.exception(f"Error processing review {review.correlation_key}")
                result.errors.append(f"{review.correlation_key}: {e}")
                return False

    async def _process(self, review: Review) -> bool | None:
        """
        Returns True if a reminder was sent, None if none was due, False if
        sending failed.
        """
        elapsed = self.clock() - review.created_at

        # Below start_after nothing is sent whatever the engagement
        if not self.policy.evaluate(elapsed, review.reviewers, frozenset()).should_notify:
            return None

        engaged = await self.resolver.resolve(review)
        escalation = self.policy.evaluate(elapsed, review.reviewers, engaged)
        if not escalation.should_notify:
            return None

        return await self.dispatcher.dispatch(review, escalation)

    # =========================================================================
    # LOOP
    # =========================================================================

    def seconds_until_first_tick(self) -> float:
        """Delay before the first tick: until the next `run_at` time, or none."""
        if self.run_at is None:
            return 0.0

        now = self.clock()
        first = now.replace(
            hour=self.run_at.hour,
            minute=self.run_at.minute,
            second=self.run_at.second,
            microsecond=0,
        )
        if first < now:
            first += timedelta(days=1)
        return (first - now).total_seconds()

    async def run_forever(self) -> None:
        """Tick at a fixed rate: each start is one interval after the previous start."""
        await asyncio.sleep(self.seconds_until_first_tick())

        loop = asyncio.get_running_loop()
        interval = self.interval.total_seconds()
        next_run = loop.time()
        while True:
            try:
                await self.run_tick()
            except Exception:
                # Already alerted; try again next tick
                logger.error("Reminder tick aborted")

            next_run += interval
            now = loop.time()
            if next_run < now:
                # Overran: skip the missed slots
                missed = int((now - next_run) // interval) + 1
                logger.warning(f"Reminder tick overran by {missed} interval(s)")
                next_run += missed * interval
            await asyncio.sleep(next_run - now)

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        logger.info(
            f"Starting reminder scheduler: every {self.interval}, "
            f"direct after {self.policy.start_after}, channel after {self.policy.channel_after}"
        )
        self._task = asyncio.create_task(self.run_forever(), name="review-reminder-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


# =============================================================================
# ENTRY POINTS
# =============================================================================


async def run_reminder_job(
    settings: Settings | None = None,
    config: ReminderConfig | None = None,
    once: bool = True,
) -> TickResult | None:
    """Build the reminder engine from settings and run one tick (or loop forever)."""
    from ..core.database import build_engine, build_session_factory
    from ..services.engagement import ReactionEngagementResolver
    from ..services.review_store import SqlReviewStore, SqlWorkspaceStore
    from ..services.slack_gateway import SlackGateway

    settings = settings or get_settings()
    config = config or ReminderConfig.from_settings(settings)

    engine = build_engine(settings.database_url_async, echo=settings.database_echo)
    session_factory = build_session_factory(engine)

    try:
        async with httpx.AsyncClient(timeout=30.0) as http_client:
            gateway = SlackGateway(
                http_client,
                SqlWorkspaceStore(session_factory, settings),
                base_url=settings.slack_api_base_url,
            )
            scheduler = EscalationScheduler.from_config(
                config,
                store=SqlReviewStore(session_factory),
                resolver=ReactionEngagementResolver(gateway),
                dispatcher=ReminderDispatcher(gateway),
                alert_webhook_url=settings.slack_alerts_webhook_url,
            )
            if once:
                return await scheduler.run_tick()
            await scheduler.run_forever()
            return None
    finally:
        await engine.dispose()


def main(argv: Sequence[str] | None = None):
    """CLI entry point for the reminder job."""
    import argparse

    parser = argparse.ArgumentParser(description="Send reminders for pending PR reviews")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit instead of looping",
    )
    parser.add_argument(
        "--profile",
        choices=["auto", "production", "fast"],
        default="auto",
        help="Threshold profile; 'auto' picks from ENVIRONMENT",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = get_settings()
    config = ReminderConfig.from_settings(settings, profile=args.profile)

    try:
        result = asyncio.run(run_reminder_job(settings=settings, config=config, once=args.once))
    except KeyboardInterrupt:
        return
    except Exception as e:
        print(f"Reminder job failed: {e}")
        exit(1)

    if result is not None:
        print(f"Reminder tick completed: {result.notified} sent, {result.failed} failed")


if __name__ == "__main__":
    main()
