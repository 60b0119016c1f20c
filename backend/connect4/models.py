from connect4 import db
from datetime import datetime

BOT_TIERS = ('easy', 'medium', 'hard')


class PlayerStats(db.Model):
    __tablename__ = 'players'
    username = db.Column(db.String(64), primary_key=True)
    wins = db.Column(db.Integer, nullable=False, default=0)
    losses = db.Column(db.Integer, nullable=False, default=0)
    draws = db.Column(db.Integer, nullable=False, default=0)
    games_played = db.Column(db.Integer, nullable=False, default=0)
    wins_vs_bot_easy = db.Column(db.Integer, nullable=False, default=0)
    wins_vs_bot_medium = db.Column(db.Integer, nullable=False, default=0)
    wins_vs_bot_hard = db.Column(db.Integer, nullable=False, default=0)
    losses_vs_bot_easy = db.Column(db.Integer, nullable=False, default=0)
    losses_vs_bot_medium = db.Column(db.Integer, nullable=False, default=0)
    losses_vs_bot_hard = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'username': self.username,
            'wins': self.wins or 0,
            'losses': self.losses or 0,
            'draws': self.draws or 0,
            'games_played': self.games_played or 0,
            'bot_stats': {
                tier: {
                    'wins': getattr(self, f'wins_vs_bot_{tier}') or 0,
                    'losses': getattr(self, f'losses_vs_bot_{tier}') or 0,
                }
                for tier in BOT_TIERS
            },
        }


class GameRecord(db.Model):
    __tablename__ = 'games'
    id = db.Column(db.String(36), primary_key=True)
    player1 = db.Column(db.String(64), nullable=False)
    player2 = db.Column(db.String(64), nullable=False)
    winner = db.Column(db.String(64), nullable=True)
    ended_reason = db.Column(db.String(16), nullable=True)  # win, draw, forfeit
    mode = db.Column(db.String(8), nullable=True)  # PVP, BOT
    difficulty = db.Column(db.String(8), nullable=True)  # EASY, MEDIUM, HARD; null for PVP
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'player1': self.player1,
            'player2': self.player2,
            'winner': self.winner,
            'ended_reason': self.ended_reason,
            'mode': self.mode,
            'difficulty': self.difficulty,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
