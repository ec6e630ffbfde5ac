"""Initial data migration for an empty worldlines store."""

import logging

from worldlines.db import WorldlineDB
from worldlines.models import EventInsert, WorldlineInsert

logger = logging.getLogger(__name__)

SEED_TIMELINE = (2002, 2102)

SEED_WORLDLINES = [
    WorldlineInsert(id="alpha", name="α", percentage=0.000000, color="rgba(255, 102, 0, 0.8)"),
    WorldlineInsert(id="beta", name="β", percentage=1.130205, color="rgba(136, 255, 136, 0.8)"),
    WorldlineInsert(id="gamma", name="γ", percentage=2.615074, color="rgba(255, 68, 68, 0.8)"),
    WorldlineInsert(id="delta", name="δ", percentage=4.091842, color="rgba(68, 170, 255, 0.8)"),
]

SEED_EVENTS = [
    EventInsert(
        id="december2022",
        date="December 2022",
        title="Beta-Alpha Worldline Regression",
        position=20.92,
        from_worldline="β: 1.130205%",
        to_worldline="α: 0.060502%",
        type="regression",
        scope="alpha",
        lore=(
            "[PERSONAL LOG - CLASSIFICATION: TEMPORAL CATASTROPHE]\n"
            "[DATE: December 2022 - Regression Point Confirmed]\n\n"
            "A warning arrived three seconds before the message was sent. "
            "It was ignored. The Beta attractor field collapsed and the "
            "divergence meter spiralled back to 0.060502%.\n\n"
            "[END LOG]"
        ),
    ),
    EventInsert(
        id="april2020",
        date="April 2020",
        title="Alpha-Beta Worldline Convergence",
        position=18.33,
        from_worldline="α: 0.000000%",
        to_worldline="β: 1.040402%",
        type="convergence",
        scope="beta",
        lore=(
            "[PERSONAL LOG - CLASSIFICATION: TEMPORAL ANOMALY]\n"
            "[DATE: April 2020 - Convergence Point Identified]\n\n"
            "A phone call at 4 AM, years of hesitation spent in one sentence, "
            "and an answer that moved the whole worldline into the Beta field.\n\n"
            "[END LOG]"
        ),
    ),
    EventInsert(
        id="may2025",
        date="May 2025",
        title="Microsoft Internship Beginning",
        position=23.42,
        to_worldline="β: 1.075432%",
        type="career",
        scope="beta",
        lore=(
            "[PERSONAL LOG - CLASSIFICATION: TEMPORAL SHIFT]\n"
            "[DATE: May 2025 - Career Convergence Point]\n\n"
            "First day on campus. Scattered pieces of study and late-night "
            "projects click into place.\n\n"
            "[STATUS: Worldline convergence at 1.075432% and holding.]\n"
            "[END LOG]"
        ),
    ),
]


def migrate_initial_data(db: WorldlineDB) -> bool:
    """Seed an empty store. Returns False when data already exists."""
    if db.count_worldlines() > 0:
        logger.info("Database already has data, skipping migration")
        return False

    logger.info("Migrating initial data...")
    for worldline in SEED_WORLDLINES:
        db.upsert_worldline(worldline)
    if db.get_timeline_config() is None:
        db.set_timeline_config(*SEED_TIMELINE)
    for event in SEED_EVENTS:
        db.upsert_event(event)
    logger.info(
        "Initial data migration completed: %d worldlines, %d events",
        len(SEED_WORLDLINES), len(SEED_EVENTS),
    )
    return True
