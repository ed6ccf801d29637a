from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'
STATUSES = (WAITING, PLAYING, FINISHED)

ROOM_CODE_LENGTH = 6
MAX_USERNAME_LENGTH = 64


def normalize_room_id(room_id) -> str:
    return str(room_id or '').strip().upper()


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


@dataclass
class Player:
    id: str
    username: str
    score: int = 0
    is_ready: bool = False
    # None until the player answers in the current round
    last_answer_correct: Optional[bool] = None
    results: List[Dict[str, Any]] = field(default_factory=list)

    def result_for(self, movie_id) -> Optional[Dict[str, Any]]:
        for result in self.results:
            if result['movieId'] == movie_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'score': self.score,
            'isReady': self.is_ready,
            'lastAnswerCorrect': self.last_answer_correct,
            'results': [dict(r) for r in self.results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=data['id'],
            username=data['username'],
            score=int(data.get('score', 0)),
            is_ready=bool(data.get('isReady', False)),
            last_answer_correct=data.get('lastAnswerCorrect'),
            results=[
                {'movieId': r['movieId'], 'isCorrect': bool(r['isCorrect'])}
                for r in data.get('results', [])
            ],
        )


@dataclass
class Room:
    id: str
    host_id: str
    movies: List[Dict[str, Any]]
    status: str = WAITING
    current_round_index: int = 0
    timer: int = 10
    round_start_time: Optional[int] = None
    players: List[Player] = field(default_factory=list)
    # Version of the stored snapshot this room was read from (0: never stored)
    version: int = 0

    @property
    def current_movie(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.current_round_index < len(self.movies):
            return self.movies[self.current_round_index]
        return None

    def find_player(self, player_id) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Full snapshot, as stored and as sent to clients."""
        return {
            'id': self.id,
            'hostId': self.host_id,
            'status': self.status,
            'currentRoundIndex': self.current_round_index,
            'movies': [dict(m) for m in self.movies],
            'timer': self.timer,
            'roundStartTime': self.round_start_time,
            'players': [p.to_dict() for p in self.players],
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: Optional[int] = None) -> 'Room':
        return cls(
            id=data['id'],
            host_id=data['hostId'],
            movies=[dict(m) for m in data.get('movies', [])],
            status=data.get('status', WAITING),
            current_round_index=int(data.get('currentRoundIndex', 0)),
            timer=int(data.get('timer', 0)),
            round_start_time=data.get('roundStartTime'),
            players=[Player.from_dict(p) for p in data.get('players', [])],
            version=int(version if version is not None else data.get('version', 0)),
        )
