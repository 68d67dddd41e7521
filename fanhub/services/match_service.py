"""
Match listing and administration

update_match() describes what changed as MatchUpdateEvent values; delivering
them to live subscribers is left to the caller
(see fanhub.socketio_handlers.dispatch_match_events).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from fanhub import db
from fanhub.errors import (
    NotFoundError,
    OperationFailedError,
    PreconditionError,
    ValidationError,
)
from fanhub.models import Match, MatchHalf, MatchStatus
from fanhub.utils.timezone_utils import to_db_time

logger = logging.getLogger(__name__)

SCORE_EVENT = "score"
STATUS_EVENT = "status"


@dataclass
class MatchUpdateEvent:
    match_id: int
    type: str
    data: dict = field(default_factory=dict)

    def to_dict(self):
        return {"matchId": self.match_id, "type": self.type, "data": self.data}


def _parse_enum(enum_cls, value, label):
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label}. Must be one of: {allowed}")


def _parse_non_negative_int(value, label):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{label} must be a non-negative integer")
    return value


def list_matches(round=None, status=None, limit=20):
    """Matches ordered by kickoff time, then round"""
    query = Match.query

    if round is not None:
        query = query.filter(Match.round == round)

    if status is not None:
        query = query.filter(Match.status == _parse_enum(MatchStatus, status, "status"))

    return query.order_by(Match.kickoff_time.asc(), Match.round.asc()).limit(limit).all()


def create_match(home_team, away_team, kickoff_time, round, season, venue=None,
                 competition="NRL", home_team_logo=None, away_team_logo=None):
    """Create an upcoming fixture"""
    if not home_team or not away_team:
        raise ValidationError("Both team names are required")
    if home_team == away_team:
        raise ValidationError("A team cannot play itself")

    match = Match(
        home_team=home_team,
        away_team=away_team,
        home_team_logo=home_team_logo,
        away_team_logo=away_team_logo,
        kickoff_time=to_db_time(kickoff_time),
        round=round,
        season=season,
        venue=venue,
        competition=competition,
        status=MatchStatus.UPCOMING,
    )
    db.session.add(match)
    db.session.commit()
    logger.info(f"Created match {match.id}: {home_team} v {away_team}")
    return match


def update_match(match_id, changes, now=None):
    """
    Apply a partial update to a match

    Args:
        match_id: Match to update
        changes: Mapping with any of homeScore, awayScore, status,
            currentMinute, half
        now: Timestamp recorded as last_score_time on score changes

    Returns:
        tuple: (match, list of MatchUpdateEvent)
    """
    now = now or datetime.now(timezone.utc)

    match = db.session.get(Match, match_id)
    if match is None:
        raise NotFoundError("Match not found")

    # Validate everything before touching the match
    values = {}
    for key, column in (
        ("homeScore", "home_score"),
        ("awayScore", "away_score"),
        ("currentMinute", "current_minute"),
    ):
        if changes.get(key) is not None:
            values[column] = _parse_non_negative_int(changes[key], key)

    new_status = None
    if changes.get("status") is not None:
        new_status = _parse_enum(MatchStatus, changes["status"], "status")
        if new_status.order < match.status.order:
            raise PreconditionError(
                f"Cannot move match from {match.status.value} back to {new_status.value}"
            )
        values["status"] = new_status

    if changes.get("half") is not None:
        values["half"] = _parse_enum(MatchHalf, changes["half"], "half")

    score_changed = "home_score" in values or "away_score" in values
    if score_changed:
        values["last_score_time"] = to_db_time(now)

    for column, value in values.items():
        setattr(match, column, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"Error updating match {match_id}: {e}")
        raise OperationFailedError("Failed to update match")

    events = []
    timestamp = now.isoformat()
    if score_changed:
        events.append(
            MatchUpdateEvent(
                match.id,
                SCORE_EVENT,
                {
                    "homeScore": match.home_score,
                    "awayScore": match.away_score,
                    "updatedAt": timestamp,
                },
            )
        )
    if new_status is not None:
        events.append(
            MatchUpdateEvent(
                match.id,
                STATUS_EVENT,
                {
                    "status": new_status.value,
                    "currentMinute": match.current_minute,
                    "half": match.half.value if match.half else None,
                    "updatedAt": timestamp,
                },
            )
        )

    logger.info(f"Updated match {match.id}: {len(events)} live event(s)")
    return match, events
