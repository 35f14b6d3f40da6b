from podvolley.models.bracket_match import BracketMatch
from podvolley.models.bracket_team import BracketTeam
from podvolley.models.email_log import EmailLog
from podvolley.models.organizer_whitelist import OrganizerWhitelist
from podvolley.models.pod import Pod
from podvolley.models.pool_match import PoolMatch
from podvolley.models.pool_standing import PoolStanding
from podvolley.models.tournament import Tournament
from podvolley.models.tournament_role import TournamentRole

__all__ = [
    "Tournament",
    "TournamentRole",
    "OrganizerWhitelist",
    "Pod",
    "PoolMatch",
    "PoolStanding",
    "BracketTeam",
    "BracketMatch",
    "EmailLog",
]
