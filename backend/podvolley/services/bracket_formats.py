"""
Fixed double-elimination bracket topologies.

A bracket is a small directed graph of games. Each slot of a game is either
seeded with a team (by seed rank) or fed by the WINNER/LOSER of an earlier game.
A decider ("bracket reset") game is not part of the seeded graph: it is created
only when the team that came through the losers' side wins the trigger game.

THREE_TEAM (9 pods, default):
    G1  Team B vs Team C             (Team A has a bye)
    G2  Team A vs W1
    G3  L1 vs L2                     (losers)
    G4  W2 vs W3
    G5  W2 vs W4 only if W4 != W2    (championship)

FOUR_TEAM (12 pods):
    G1  Team A vs Team C
    G2  Team B vs Team D
    G3  W1 vs W2
    G4  L1 vs L2                     (losers)
    G5  W4 vs L3                     (losers)
    G6  W3 vs W5                     (championship)
    G7  W3 vs W6 only if W6 != W3    (championship)
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

ROLE_WINNER = "WINNER"
ROLE_LOSER = "LOSER"

BRACKET_WINNERS = "winners"
BRACKET_LOSERS = "losers"
BRACKET_CHAMPIONSHIP = "championship"


@dataclass(frozen=True)
class SlotSource:
    game_number: int
    role: str  # ROLE_WINNER | ROLE_LOSER


@dataclass(frozen=True)
class GameNode:
    game_number: int
    bracket_type: str
    seed_a: Optional[int] = None  # 1-based team seed placed directly in slot A
    seed_b: Optional[int] = None
    source_a: Optional[SlotSource] = None
    source_b: Optional[SlotSource] = None


@dataclass(frozen=True)
class DeciderRule:
    trigger_game: int  # completion of this game decides whether the decider is needed
    reference_game: int  # the undefeated side's last winners-bracket game
    game_number: int
    bracket_type: str = BRACKET_CHAMPIONSHIP


@dataclass(frozen=True)
class BracketFormat:
    key: str
    team_names: Tuple[str, ...]
    seeding: Tuple[Tuple[int, ...], ...]  # standings ranks (1-based) per team, same order as team_names
    games: Tuple[GameNode, ...]
    decider: DeciderRule
    min_pool_games: int

    @property
    def pods_required(self) -> int:
        return sum(len(ranks) for ranks in self.seeding)

    def game(self, game_number: int) -> Optional[GameNode]:
        for node in self.games:
            if node.game_number == game_number:
                return node
        return None


def _w(game_number: int) -> SlotSource:
    return SlotSource(game_number, ROLE_WINNER)


def _l(game_number: int) -> SlotSource:
    return SlotSource(game_number, ROLE_LOSER)


THREE_TEAM = BracketFormat(
    key="three_team",
    team_names=("Team A", "Team B", "Team C"),
    seeding=((1, 5, 9), (2, 6, 7), (3, 4, 8)),
    games=(
        GameNode(1, BRACKET_WINNERS, seed_a=2, seed_b=3),
        GameNode(2, BRACKET_WINNERS, seed_a=1, source_b=_w(1)),
        GameNode(3, BRACKET_LOSERS, source_a=_l(1), source_b=_l(2)),
        GameNode(4, BRACKET_WINNERS, source_a=_w(2), source_b=_w(3)),
    ),
    decider=DeciderRule(trigger_game=4, reference_game=2, game_number=5),
    min_pool_games=6,
)

FOUR_TEAM = BracketFormat(
    key="four_team",
    team_names=("Team A", "Team B", "Team C", "Team D"),
    seeding=((1, 12, 7), (2, 11, 8), (3, 9, 6), (4, 10, 5)),
    games=(
        GameNode(1, BRACKET_WINNERS, seed_a=1, seed_b=3),
        GameNode(2, BRACKET_WINNERS, seed_a=2, seed_b=4),
        GameNode(3, BRACKET_WINNERS, source_a=_w(1), source_b=_w(2)),
        GameNode(4, BRACKET_LOSERS, source_a=_l(1), source_b=_l(2)),
        GameNode(5, BRACKET_LOSERS, source_a=_w(4), source_b=_l(3)),
        GameNode(6, BRACKET_CHAMPIONSHIP, source_a=_w(3), source_b=_w(5)),
    ),
    decider=DeciderRule(trigger_game=6, reference_game=3, game_number=7),
    min_pool_games=12,
)

BRACKET_FORMATS: Dict[str, BracketFormat] = {fmt.key: fmt for fmt in (THREE_TEAM, FOUR_TEAM)}


def get_bracket_format(key: Optional[str]) -> BracketFormat:
    """Look up a bracket format by key; None means the default three-team bracket."""
    if key is None:
        return THREE_TEAM
    try:
        return BRACKET_FORMATS[key]
    except KeyError:
        raise ValueError(f"Unknown bracket format: {key}") from None
