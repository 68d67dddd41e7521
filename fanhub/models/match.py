import enum
from datetime import datetime, timezone

from fanhub import db


class MatchStatus(enum.Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"

    @property
    def order(self):
        """Position in the match lifecycle"""
        return list(MatchStatus).index(self)


class MatchHalf(enum.Enum):
    FIRST_HALF = "FIRST_HALF"
    HALF_TIME = "HALF_TIME"
    SECOND_HALF = "SECOND_HALF"
    FULL_TIME = "FULL_TIME"


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Fixture identification
    round = db.Column(db.Integer, nullable=False)
    season = db.Column(db.Integer, nullable=False)
    competition = db.Column(db.String(50), nullable=False, default="NRL")
    venue = db.Column(db.String(200))

    # Teams are referenced by name; predictions store the same string
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)
    home_team_logo = db.Column(db.String(500))
    away_team_logo = db.Column(db.String(500))

    # Scores (null until the match starts)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Live state
    status = db.Column(
        db.Enum(MatchStatus, name="match_status"),
        nullable=False,
        default=MatchStatus.UPCOMING,
    )
    half = db.Column(db.Enum(MatchHalf, name="match_half"))
    current_minute = db.Column(db.Integer)

    # Timing
    kickoff_time = db.Column(db.DateTime, nullable=False)
    last_score_time = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_match_round", "season", "round"),
        db.Index("idx_match_kickoff", "kickoff_time"),
        db.Index("idx_match_status", "status"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
    )

    def __repr__(self):
        return f"<Match {self.home_team} v {self.away_team} Round {self.round}>"

    @property
    def has_scores(self):
        return self.home_score is not None and self.away_score is not None

    def has_team(self, team_name):
        return team_name in (self.home_team, self.away_team)

    def has_started(self, now=None):
        """Check if kickoff time has passed"""
        if not self.kickoff_time:
            return False
        now = now or datetime.now(timezone.utc)
        kickoff = self.kickoff_time

        # If kickoff_time is timezone-naive, assume it's in UTC
        if kickoff.tzinfo is None:
            kickoff = kickoff.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        return now >= kickoff

    def to_dict(self, include_prediction_count=False):
        """Convert match to dictionary for API responses"""
        data = {
            "id": self.id,
            "round": self.round,
            "season": self.season,
            "competition": self.competition,
            "venue": self.venue,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "homeTeamLogo": self.home_team_logo,
            "awayTeamLogo": self.away_team_logo,
            "homeScore": self.home_score,
            "awayScore": self.away_score,
            "status": self.status.value if self.status else None,
            "half": self.half.value if self.half else None,
            "currentMinute": self.current_minute,
            "kickoffTime": self.kickoff_time.isoformat() if self.kickoff_time else None,
            "lastScoreTime": (
                self.last_score_time.isoformat() if self.last_score_time else None
            ),
        }

        if include_prediction_count:
            data["predictionCount"] = self.predictions.count()

        return data
