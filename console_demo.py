"""
Offline console demo: walks a visitor from landing page to price estimate,
consultation booking and follow-up emails.

Uses the real journey tracker, estimators, inquiry engine and email
sequencer with an in-memory store and outbox. Time is simulated with a
manual clock, so the demo runs instantly and needs no network access.

Usage:
    python console_demo.py
    python console_demo.py --scenario collaboration
    python console_demo.py --scenario teaching --store sequences.json
"""

import argparse
from datetime import datetime, timedelta, timezone
from typing import Optional

from inquiry_engine.automation.sequencer import EmailAutomationSequencer
from inquiry_engine.automation.store import InMemorySequenceStore, JsonFileSequenceStore
from inquiry_engine.automation.transport import OutboxTransport
from inquiry_engine.clock import ManualClock, Scheduler
from inquiry_engine.config import settings
from inquiry_engine.inquiry.engine import InquiryPricingEngine
from inquiry_engine.journey.tracker import JourneyTracker
from inquiry_engine.pricing.lessons import get_all_packages_with_pricing
from inquiry_engine.schemas.journey_schema import ContactContext
from inquiry_engine.schemas.pricing_schema import PriceEstimate

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_START = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)


class DemoSession:
    """One simulated visitor, from first page view to follow-up sequence."""

    # landing URL, referrer, then (seconds on previous page, next path) pairs
    JOURNEYS: dict[str, tuple[str, Optional[str], list[tuple[int, str]]]] = {
        "performance": (
            "https://www.rrishmusic.com/performance",
            "https://www.google.com/search?q=wedding+guitarist",
            [(95, "/performance/weddings"), (140, "/gigs"), (60, "/contact")],
        ),
        "collaboration": (
            "https://www.rrishmusic.com/?utm_source=newsletter&utm_campaign=studio",
            None,
            [(20, "/collaboration"), (180, "/projects"), (45, "/contact")],
        ),
        "teaching": (
            "https://www.rrishmusic.com/lessons",
            "https://www.instagram.com/",
            [(120, "/lessons/pricing"), (90, "/#approach"), (30, "/contact")],
        ),
    }

    INQUIRIES: dict[str, dict[str, str]] = {
        "performance": {
            "performanceFormat": "band",
            "performanceStyle": "acoustic",
            "eventType": "wedding",
            "duration": "4 hours",
            "guestCount": "120",
            "budgetRange": "2000-4000",
        },
        "collaboration": {
            "projectType": "studio",
            "projectScope": "short-term",
            "timeline": "specific-date",
            "experience": "some-experience",
            "creativeVision": "Record and produce a four-track acoustic EP with layered guitars",
            "budgetRange": "1000-3000",
        },
    }

    def __init__(self, store_path: Optional[str] = None) -> None:
        self.clock = ManualClock(DEMO_START)
        self.scheduler = Scheduler(self.clock)
        self.transport = OutboxTransport()
        store = JsonFileSequenceStore(store_path) if store_path else InMemorySequenceStore()
        self.sequencer = EmailAutomationSequencer(
            store=store, transport=self.transport, clock=self.clock
        )

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def visitor(self, text: str) -> None:
        print(f"{BLUE}[Visitor] {RESET}{text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        landing, referrer, steps = self.JOURNEYS[scenario]

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  INQUIRY JOURNEY ENGINE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Artist: {settings.brand.artist_name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        tracker = JourneyTracker.from_landing(landing, referrer=referrer, clock=self.clock)
        self.visitor(f"lands on {landing}")
        for seconds, path in steps:
            self.clock.advance(seconds=seconds)
            tracker.record_page_view(path)
            self.visitor(f"opens {path} after {seconds}s")

        context = tracker.snapshot()
        interest = context.primary_service_interest
        self.system_log(f"Referral: {context.referral_source_type.value}")
        self.system_log(f"Primary interest: {interest.value if interest else 'none'}")
        self.system_log(f"Confidence: {context.confidence_score:.2f}")

        if scenario == "teaching":
            self._show_lesson_packages()
        else:
            self._estimate_and_book(scenario, tracker)

        self._submit_contact_form(scenario, context)

    def _show_lesson_packages(self) -> None:
        print()
        self.say("Lesson packages:")
        for package in get_all_packages_with_pricing():
            marker = f" {YELLOW}(most popular){RESET}" if package["popular"] else ""
            self.say(f"  {package['name']}: ${package['price']} - {package['description']}{marker}")

    def _estimate_and_book(self, scenario: str, tracker: JourneyTracker) -> None:
        engine = InquiryPricingEngine(clock=self.clock, scheduler=self.scheduler, tracker=tracker)
        print()
        self.visitor("fills in the pricing calculator")
        if scenario == "performance":
            estimate = engine.estimate_performance_price(self.INQUIRIES[scenario])
        else:
            estimate = engine.estimate_collaboration_price(self.INQUIRIES[scenario])

        if estimate is None:
            print(f"{RED}Estimate failed: {engine.state.error_message}{RESET}")
            return
        self._show_estimate(engine, estimate)

        self.visitor("asks for a consultation")
        booking = engine.schedule_consultation({
            "serviceType": scenario,
            "preferredDates": [(self.clock.now() + timedelta(days=5)).date().isoformat()],
            "preferredTime": "evening",
            "consultationType": "video",
        })
        if booking is None:
            print(f"{RED}Consultation not booked: {engine.state.error_message}{RESET}")
            return
        self.system_log(f"Consultation {booking.id}: {booking.status.value}")

        self.clock.advance(seconds=settings.consultation.settle_delay_seconds)
        self.scheduler.run_pending()
        scheduled = engine.state.consultation_booking
        self.say(
            f"Consultation {scheduled.status.value} for {scheduled.scheduled_date} "
            f"at {scheduled.scheduled_time}"
        )
        self.system_log(f"Phase trace: {' -> '.join(engine.get_phase_trace())}")
        engine.dispose()

    def _show_estimate(self, engine: InquiryPricingEngine, estimate: PriceEstimate) -> None:
        formatted = engine.formatted_estimate
        self.say(f"Estimated price: {formatted.range} ({formatted.confidence})")
        self.say(formatted.summary)
        for adjustment in estimate.adjustments:
            self.system_log(
                f"{adjustment.description}: {adjustment.impact} {adjustment.percentage}%"
            )
        for reason in estimate.consultation_reasons:
            self.system_log(f"Consultation reason: {reason}")
        self.system_log(f"Budget fit: {estimate.budget_fit.value}")

    def _submit_contact_form(self, scenario: str, context: ContactContext) -> None:
        print()
        self.visitor("submits the contact form")
        result = self.sequencer.initialize_follow_up_sequence(
            {"name": "Emma", "email": "emma@example.com", "serviceType": scenario},
            context=context,
        )
        if not result.success:
            print(f"{RED}Follow-ups not scheduled: {result.error}{RESET}")
            return

        self.say(f"Sequence {result.sequence_id}: {result.scheduled_emails} emails scheduled")
        for email in self.sequencer.get_emails(result.sequence_id):
            offset = email.send_time - self.clock.now()
            self.system_log(f"+{offset.days:>2}d  {email.subject}")

        # The dispatcher sends the confirmation; the lead replies a day later.
        for email in self.transport.take_due(self.clock.now()):
            self.sequencer.record_delivery(email.email_id)
            self.system_log(f"Sent: {email.subject}")
        self.clock.advance(days=1)
        self.visitor("replies to the confirmation email")
        cancel = self.sequencer.cancel_sequence(result.sequence_id, reason="lead_replied")
        if cancel.success:
            self.say(f"Follow-ups stopped: {cancel.cancelled_emails} unsent emails cancelled")
        else:
            print(f"{RED}Cancellation failed: {cancel.error}{RESET}")

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Outbox: {len(self.transport.outbox)} emails{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(DemoSession.JOURNEYS),
        default="performance",
        help="Visitor journey to play through",
    )
    parser.add_argument(
        "--store",
        default=None,
        help="Persist follow-up sequences to this JSON file instead of memory",
    )
    args = parser.parse_args()

    DemoSession(store_path=args.store).run_scenario(args.scenario)


if __name__ == "__main__":
    main()
