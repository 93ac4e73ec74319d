"""
Demo data for local runs and screenshots.

Times and seat counts are drawn from ``random.Random(seed)``, so the same seed
always produces the same catalogue. Nothing here writes reservations or
capacity overrides; real seat counts only ever come from committed data.

    python -m app.db.seed --seed 42
"""

import argparse
import logging
import random
from datetime import time
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.activity import Activity, CapacityTemplateEntry
from app.models.package_tour import PackageTour, PackageTourActivity
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)

DEMO_ACTIVITIES = [
    ("ATV Safari", ["atv", "quad safari"], 60),
    ("Paragliding", ["yamac parasutu", "tandem paragliding"], 45),
    ("Boat Tour", ["tekne turu", "12 islands boat"], 360),
    ("City Tour", ["sehir turu", "old town walk"], 120),
]

SLOT_HOURS = list(range(8, 19))
SEAT_CHOICES = [4, 6, 8, 10, 12, 15, 20]
WEEKDAY_PATTERNS = ["0,1,2,3,4,5,6", "0,1,2,3,4", "5,6", "0,2,4,6"]


def seed_demo_data(db: Session, tenant: Tenant, seed: int = 0) -> List[Activity]:
    rng = random.Random(seed)
    activities = []

    for name, aliases, duration in DEMO_ACTIVITIES:
        activity = Activity(
            tenant_id=tenant.id,
            name=name,
            name_aliases=aliases,
            duration_minutes=duration,
        )
        hours = sorted(rng.sample(SLOT_HOURS, rng.randint(1, 3)))
        for hour in hours:
            activity.capacity_templates.append(CapacityTemplateEntry(
                weekdays=rng.choice(WEEKDAY_PATTERNS),
                start_time=time(hour, rng.choice([0, 30])),
                seats=rng.choice(SEAT_CHOICES),
            ))
        db.add(activity)
        activities.append(activity)
    db.flush()

    # two-day package over the first two activities, at their earliest template time
    first, second = activities[0], activities[1]
    db.add(PackageTour(
        tenant_id=tenant.id,
        name="Adventure Weekend",
        members=[
            PackageTourActivity(
                activity_id=first.id,
                day_offset=0,
                default_time=min(e.start_time for e in first.capacity_templates),
                sort_order=0,
            ),
            PackageTourActivity(
                activity_id=second.id,
                day_offset=1,
                default_time=min(e.start_time for e in second.capacity_templates),
                sort_order=1,
            ),
        ],
    ))
    db.commit()
    logger.info("Seeded %d demo activities for tenant %s (seed=%d)", len(activities), tenant.id, seed)
    return activities


def main(argv: Optional[List[str]] = None) -> None:
    from app.core.config import settings
    from app.db.init_db import init_db
    from app.db.session import SessionLocal

    parser = argparse.ArgumentParser(description="Create a demo tenant with seeded activities.")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--tenant-name", default="Demo Tours")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL)
    init_db()
    db = SessionLocal()
    try:
        tenant = Tenant(name=args.tenant_name)
        db.add(tenant)
        db.flush()
        seed_demo_data(db, tenant, args.seed)
        logger.info("Demo tenant id: %s", tenant.id)
    finally:
        db.close()


if __name__ == "__main__":
    main()
