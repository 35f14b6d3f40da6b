# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from podvolley.models.bracket_match import BracketMatch  # noqa: F401
from podvolley.models.bracket_team import BracketTeam  # noqa: F401
from podvolley.models.email_log import EmailLog  # noqa: F401
from podvolley.models.organizer_whitelist import OrganizerWhitelist  # noqa: F401
from podvolley.models.pod import Pod  # noqa: F401
from podvolley.models.pool_match import PoolMatch  # noqa: F401
from podvolley.models.pool_standing import PoolStanding  # noqa: F401
from podvolley.models.tournament import Tournament  # noqa: F401
from podvolley.models.tournament_role import TournamentRole  # noqa: F401
