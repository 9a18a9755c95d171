"""
Scoring Thresholds

Per-client traffic-light cut points. The canonical form is two inclusive
maxima:

    Red     0 .. red_max
    Orange  red_max + 1 .. orange_max
    Green   orange_max + 1 .. 100

with 0 <= red_max < orange_max < 100.

Stored configuration comes in three historical shapes. Resolution is an
ordered match, first hit wins:

    1. thresholds.redMax + thresholds.orangeMax    canonical, used verbatim
    2. thresholds.red + thresholds.yellow          legacy, converted
    3. scoringProfile                              built-in profile default
    4. nothing usable                              lifestyle default

Anything that would produce an unusable classifier (broken invariant,
non-numeric values, unknown profile) resolves to the lifestyle default.
Resolution never raises; explicit coach writes do.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from core.config import settings
from core.exceptions import ScoringPlatformError, ThresholdValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringThresholds:
    red_max: int
    orange_max: int

    def is_valid(self) -> bool:
        return 0 <= self.red_max < self.orange_max < 100

    def to_dict(self) -> Dict[str, int]:
        return {"redMax": self.red_max, "orangeMax": self.orange_max}


class ScoringProfile(str, Enum):
    LIFESTYLE = "lifestyle"
    HIGH_PERFORMANCE = "high-performance"
    MODERATE = "moderate"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProfileDefinition:
    name: str
    description: str
    thresholds: ScoringThresholds


SCORING_PROFILES: Dict[ScoringProfile, ProfileDefinition] = {
    ScoringProfile.LIFESTYLE: ProfileDefinition(
        name="Lifestyle",
        description="General wellness, flexible approach - More lenient standards",
        thresholds=ScoringThresholds(red_max=33, orange_max=80),
    ),
    ScoringProfile.HIGH_PERFORMANCE: ProfileDefinition(
        name="High Performance",
        description="Elite athletes, competitive clients - Stricter standards",
        thresholds=ScoringThresholds(red_max=75, orange_max=89),
    ),
    ScoringProfile.MODERATE: ProfileDefinition(
        name="Moderate",
        description="Active clients, good adherence expected",
        thresholds=ScoringThresholds(red_max=60, orange_max=85),
    ),
    ScoringProfile.CUSTOM: ProfileDefinition(
        name="Custom",
        description="Customized thresholds for specific needs",
        thresholds=ScoringThresholds(red_max=70, orange_max=85),
    ),
}

FALLBACK_PROFILE = ScoringProfile.LIFESTYLE


def get_default_thresholds(profile: Union[ScoringProfile, str]) -> ScoringThresholds:
    """Built-in thresholds for a profile; unknown names get the lifestyle default."""
    try:
        return SCORING_PROFILES[ScoringProfile(profile)].thresholds
    except ValueError:
        return SCORING_PROFILES[FALLBACK_PROFILE].thresholds


def score_range_description(thresholds: ScoringThresholds) -> str:
    return (
        f"Red: 0-{thresholds.red_max}% | "
        f"Orange: {thresholds.red_max + 1}-{thresholds.orange_max}% | "
        f"Green: {thresholds.orange_max + 1}-100%"
    )


# ---------------------------------------------------------------------------
# Stored configuration shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CanonicalConfig:
    red_max: Any
    orange_max: Any


@dataclass(frozen=True)
class LegacyConfig:
    red: Any
    yellow: Any
    green: Any = None


@dataclass(frozen=True)
class ProfileConfig:
    profile: str


@dataclass(frozen=True)
class EmptyConfig:
    pass


StoredScoringConfig = Union[CanonicalConfig, LegacyConfig, ProfileConfig, EmptyConfig]


def parse_scoring_config(raw: Optional[Dict[str, Any]]) -> StoredScoringConfig:
    """
    Classify a stored configuration document into exactly one shape.

    Accepts the client_scoring document ({"thresholds": {...},
    "scoringProfile": "..."}) with camelCase or snake_case keys.
    """
    if not isinstance(raw, dict):
        return EmptyConfig()

    thresholds = raw.get("thresholds")
    if isinstance(thresholds, dict):
        red_max = thresholds.get("redMax", thresholds.get("red_max"))
        orange_max = thresholds.get("orangeMax", thresholds.get("orange_max"))
        if red_max is not None and orange_max is not None:
            return CanonicalConfig(red_max=red_max, orange_max=orange_max)

        if thresholds.get("red") is not None and thresholds.get("yellow") is not None:
            return LegacyConfig(
                red=thresholds["red"],
                yellow=thresholds["yellow"],
                green=thresholds.get("green"),
            )

    profile = raw.get("scoringProfile", raw.get("scoring_profile"))
    if profile:
        return ProfileConfig(profile=str(profile))

    return EmptyConfig()


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


# ---------------------------------------------------------------------------
# Legacy conversion
# ---------------------------------------------------------------------------

class LegacyThresholdConverter:
    """Maps the legacy {red, yellow} cut points onto {red_max, orange_max}."""

    def convert(self, config: LegacyConfig) -> Optional[ScoringThresholds]:
        raise NotImplementedError


class OffsetLegacyConverter(LegacyThresholdConverter):
    """
    Legacy cut points were the first score of the next band up: a client was
    red below `red` and orange below `yellow`. The inclusive maxima are one
    less (red=60, yellow=80 -> red_max=59, orange_max=79).
    """

    def convert(self, config: LegacyConfig) -> Optional[ScoringThresholds]:
        red = _as_int(config.red)
        yellow = _as_int(config.yellow)
        if red is None or yellow is None:
            return None
        return ScoringThresholds(red_max=red - 1, orange_max=yellow - 1)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class ThresholdResolver:
    """Resolve any stored configuration into canonical, valid thresholds."""

    def __init__(self, legacy_converter: Optional[LegacyThresholdConverter] = None):
        self.legacy_converter = legacy_converter or OffsetLegacyConverter()

    def resolve(self, raw: Optional[Dict[str, Any]]) -> ScoringThresholds:
        config = parse_scoring_config(raw)
        candidate = self._candidate(config)

        if candidate is not None and candidate.is_valid():
            return candidate

        if candidate is not None or not isinstance(config, EmptyConfig):
            logger.warning(
                f"Unusable scoring configuration {config!r}, "
                f"falling back to {FALLBACK_PROFILE.value} thresholds"
            )
        return SCORING_PROFILES[FALLBACK_PROFILE].thresholds

    def _candidate(self, config: StoredScoringConfig) -> Optional[ScoringThresholds]:
        if isinstance(config, CanonicalConfig):
            red_max = _as_int(config.red_max)
            orange_max = _as_int(config.orange_max)
            if red_max is None or orange_max is None:
                return None
            return ScoringThresholds(red_max=red_max, orange_max=orange_max)

        if isinstance(config, LegacyConfig):
            return self.legacy_converter.convert(config)

        if isinstance(config, ProfileConfig):
            try:
                return SCORING_PROFILES[ScoringProfile(config.profile)].thresholds
            except ValueError:
                return None

        if isinstance(config, EmptyConfig):
            return None

        raise TypeError(f"Unhandled scoring configuration shape: {type(config).__name__}")


_default_resolver = ThresholdResolver()


def resolve_thresholds(raw: Optional[Dict[str, Any]]) -> ScoringThresholds:
    return _default_resolver.resolve(raw)


# ---------------------------------------------------------------------------
# Client configuration persistence
# ---------------------------------------------------------------------------

def _scoring_document(record: Any) -> Dict[str, Any]:
    return {
        "thresholds": record.thresholds,
        "scoringProfile": record.scoring_profile,
    }


def get_or_create_client_scoring(client_id: str, db: Any):
    """
    Get or create the client's scoring configuration.

    Creates with the default profile's thresholds if none exists yet.
    """
    from models import ClientScoring

    record = (
        db.query(ClientScoring)
        .filter(ClientScoring.client_id == client_id)
        .first()
    )

    if not record:
        profile = settings.DEFAULT_SCORING_PROFILE
        record = ClientScoring(
            client_id=client_id,
            scoring_profile=profile,
            thresholds=get_default_thresholds(profile).to_dict(),
        )
        db.add(record)
        db.flush()
        logger.info(f"Created scoring configuration for client {client_id} (profile={profile})")

    return record


def get_client_thresholds(client_id: str, db: Any) -> ScoringThresholds:
    """Resolved thresholds for a client, without creating a row."""
    from models import ClientScoring

    record = (
        db.query(ClientScoring)
        .filter(ClientScoring.client_id == client_id)
        .first()
    )
    if not record:
        return get_default_thresholds(settings.DEFAULT_SCORING_PROFILE)
    return resolve_thresholds(_scoring_document(record))


def set_client_thresholds(client_id: str, red_max: int, orange_max: int, db: Any) -> ScoringThresholds:
    """
    Store coach-chosen thresholds under the custom profile.

    Raises ThresholdValidationError if the cut points are unusable.
    """
    red = _as_int(red_max)
    orange = _as_int(orange_max)
    if red is None or orange is None:
        raise ThresholdValidationError(red_max, orange_max)

    thresholds = ScoringThresholds(red_max=red, orange_max=orange)
    if not thresholds.is_valid():
        raise ThresholdValidationError(red_max, orange_max)

    record = get_or_create_client_scoring(client_id, db)
    record.scoring_profile = ScoringProfile.CUSTOM.value
    record.thresholds = thresholds.to_dict()
    db.flush()
    return thresholds


def apply_scoring_profile(client_id: str, profile: Union[ScoringProfile, str], db: Any) -> ScoringThresholds:
    """Switch a client to a built-in profile and its default thresholds."""
    try:
        chosen = ScoringProfile(profile)
    except ValueError:
        raise ScoringPlatformError(
            f"Unknown scoring profile: {profile!r}",
            error_code="VALIDATION_ERROR_PROFILE",
        ) from None

    thresholds = SCORING_PROFILES[chosen].thresholds
    record = get_or_create_client_scoring(client_id, db)
    record.scoring_profile = chosen.value
    record.thresholds = thresholds.to_dict()
    db.flush()
    return thresholds


def _is_lifestyle(record: Any) -> bool:
    lifestyle = SCORING_PROFILES[ScoringProfile.LIFESTYLE].thresholds
    thresholds = record.thresholds if isinstance(record.thresholds, dict) else {}
    return (
        record.scoring_profile == ScoringProfile.LIFESTYLE.value
        or (
            thresholds.get("redMax") == lifestyle.red_max
            and thresholds.get("orangeMax") == lifestyle.orange_max
        )
    )


def migrate_lifestyle_to_moderate(db: Any) -> Dict[str, int]:
    """
    Move every client on the lifestyle profile to moderate.

    A client counts as lifestyle by profile name or by carrying exactly the
    lifestyle thresholds. Custom thresholds are left alone. Per-client
    failures are logged and counted; the rest of the batch continues.
    """
    from models import ClientScoring

    moderate = SCORING_PROFILES[ScoringProfile.MODERATE].thresholds
    records = db.query(ClientScoring).all()

    stats = {"updated": 0, "skipped": 0, "errors": 0, "total": len(records)}
    logger.info("Starting migration of lifestyle scoring to moderate")

    for record in records:
        try:
            if not _is_lifestyle(record):
                stats["skipped"] += 1
                continue

            record.scoring_profile = ScoringProfile.MODERATE.value
            record.thresholds = moderate.to_dict()
            record.migrated_at = datetime.now(timezone.utc)
            record.migration_note = "Migrated from lifestyle to moderate default thresholds"
            stats["updated"] += 1
            logger.info(f"Updated client {record.client_id} from lifestyle to moderate")
        except Exception as e:
            stats["errors"] += 1
            logger.error(f"Error migrating scoring for client {record.client_id}: {e}", exc_info=True)

    db.flush()

    logger.info(
        f"Scoring migration complete: {stats['updated']} updated, "
        f"{stats['skipped']} skipped, {stats['errors']} errors"
    )
    return stats


def run_lifestyle_migration() -> Dict[str, int]:
    """Run the lifestyle migration as a standalone batch job in its own session."""
    from core.database import get_db_sync

    db = get_db_sync()
    try:
        stats = migrate_lifestyle_to_moderate(db)
        db.commit()
        return stats
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
