import enum
from datetime import datetime, timezone

from fanhub import db


class PredictionOutcome(enum.Enum):
    """Python view of the nullable is_correct column"""

    UNRESOLVED = "unresolved"
    CORRECT = "correct"
    INCORRECT = "incorrect"

    @classmethod
    def from_flag(cls, is_correct):
        if is_correct is None:
            return cls.UNRESOLVED
        return cls.CORRECT if is_correct else cls.INCORRECT


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Must equal the match's home_team or away_team
    predicted_winner = db.Column(db.String(100), nullable=False)

    # Results (stamped once the match is completed)
    is_correct = db.Column(db.Boolean, nullable=True)
    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_prediction_user_created", "user_id", "created_at"),
        db.Index("idx_prediction_resolved_created", "is_correct", "created_at"),
        db.Index("idx_prediction_match", "match_id"),
    )

    def __repr__(self):
        return f"<Prediction user_id={self.user_id} match_id={self.match_id} winner={self.predicted_winner}>"

    @property
    def outcome(self):
        return PredictionOutcome.from_flag(self.is_correct)

    def apply_result(self, match):
        """Stamp correctness and points from the match's final score"""
        from fanhub.utils.scoring import calculate_prediction_points, is_prediction_correct

        self.is_correct = is_prediction_correct(self.predicted_winner, match)
        self.points = calculate_prediction_points(self.predicted_winner, match)

    def to_dict(self, include_match=False):
        """Convert prediction to dictionary for API responses"""
        data = {
            "id": self.id,
            "userId": self.user_id,
            "matchId": self.match_id,
            "predictedWinner": self.predicted_winner,
            "isCorrect": self.is_correct,
            "outcome": self.outcome.value,
            "points": self.points,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

        if include_match and self.match:
            data["match"] = self.match.to_dict()

        return data
