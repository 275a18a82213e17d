"""
Shared test helpers for the CartCare test suite.

Seed functions write straight through the ORM; fake collaborators stand in
for the provider resolver, advisory generator and notifier.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from core.base import CartStatus, ProviderLinkStatus
from core.interfaces.advisory import AdvisoryGenerator
from core.interfaces.notification import Notifier
from core.interfaces.provider import ProviderResolver
from modules.fleet.models import Cart, CartTelemetry
from modules.providers.models import ServiceProvider, StoreProviderLink


def add_cart(session_factory, store_id: int = 1, last_maintenance: Optional[datetime] = None,
             status: CartStatus = CartStatus.ACTIVE, qr_code: Optional[str] = None) -> int:
    """Insert a cart and return its id. Datetimes are stored as naive UTC."""
    if last_maintenance is not None and last_maintenance.tzinfo is not None:
        last_maintenance = last_maintenance.replace(tzinfo=None)
    with session_factory() as db:
        cart = Cart(store_id=store_id, last_maintenance=last_maintenance, status=status, qr_code=qr_code)
        db.add(cart)
        db.commit()
        return cart.id


def add_telemetry(session_factory, cart_id: int, metric_date: date, usage_hours: float = 0,
                  issues_reported: int = 0, downtime_minutes: float = 0, maintenance_cost: float = 0) -> None:
    with session_factory() as db:
        db.add(CartTelemetry(
            cart_id=cart_id, metric_date=metric_date, usage_hours=usage_hours,
            issues_reported=issues_reported, downtime_minutes=downtime_minutes,
            maintenance_cost=maintenance_cost,
        ))
        db.commit()


def add_week(session_factory, cart_id: int, end: date, usage_hours: float, issues: int,
             downtime_minutes: float, days: int = 7) -> None:
    """Spread weekly totals evenly over `days` daily rows ending on `end`.

    Downtime is the per-day value, so the window average equals downtime_minutes.
    """
    for i in range(days):
        add_telemetry(
            session_factory, cart_id, end - timedelta(days=i),
            usage_hours=usage_hours / days,
            issues_reported=issues // days + (1 if i < issues % days else 0),
            downtime_minutes=downtime_minutes,
        )


def add_provider(session_factory, store_id: int = 1, link_status: ProviderLinkStatus = ProviderLinkStatus.ACCEPTED,
                 is_active: bool = True, name: str = "Cart Fixers Inc") -> int:
    with session_factory() as db:
        provider = ServiceProvider(company_name=name, is_active=is_active)
        db.add(provider)
        db.flush()
        db.add(StoreProviderLink(store_id=store_id, provider_id=provider.id, status=link_status))
        db.commit()
        return provider.id


def high_risk_cart(session_factory, now: datetime, store_id: int = 1) -> int:
    """A cart scoring 100: 210 h, 6 issues, 130 min average downtime, serviced 95 days ago."""
    cart_id = add_cart(session_factory, store_id=store_id, last_maintenance=now - timedelta(days=95))
    add_week(session_factory, cart_id, now.date(), usage_hours=210, issues=6, downtime_minutes=130)
    return cart_id


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class StaticResolver(ProviderResolver):
    def __init__(self, mapping: Optional[dict] = None, error: Optional[Exception] = None):
        self.mapping = mapping or {}
        self.error = error
        self.calls = []

    def resolve_active_provider(self, store_id: int) -> Optional[int]:
        self.calls.append(store_id)
        if self.error is not None:
            raise self.error
        return self.mapping.get(store_id)


class FakeAdvisory(AdvisoryGenerator):
    def __init__(self, text: str = "Replace the front casters.", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.prompts = []

    def generate_advisory(self, summary_text: str) -> str:
        self.prompts.append(summary_text)
        if self.error is not None:
            raise self.error
        return self.text


class RecordingNotifier(Notifier):
    def __init__(self, error: Optional[Exception] = None):
        self.sent = []
        self.error = error

    def notify(self, event_kind: str, payload: dict) -> None:
        self.sent.append((event_kind, payload))
        if self.error is not None:
            raise self.error

    def kinds(self) -> list:
        return [kind for kind, _ in self.sent]
