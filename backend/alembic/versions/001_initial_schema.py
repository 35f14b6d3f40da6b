"""Initial schema: tournaments, pods, pool play, bracket play, roles.

Revision ID: 001_initial_schema
Revises:
"""

from alembic import op
import sqlalchemy as sa


revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _tournament_fk():
    return sa.ForeignKey("tournaments.id", ondelete="CASCADE")


def upgrade():
    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="upcoming"),
        sa.Column("max_pods", sa.Integer(), nullable=False, server_default="9"),
        sa.Column("bracket_format", sa.String(), nullable=False, server_default="three_team"),
        sa.Column("scoring_rules", sa.JSON(), nullable=True),
        sa.Column("registration_open_date", sa.DateTime(), nullable=True),
        sa.Column("registration_deadline", sa.DateTime(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tournaments_slug", "tournaments", ["slug"], unique=True)

    op.create_table(
        "pods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("player1", sa.String(), nullable=False),
        sa.Column("player2", sa.String(), nullable=True),
        sa.Column("team_name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "tournament_id", name="unique_user_tournament"),
    )
    op.create_index("ix_pods_tournament_id", "pods", ["tournament_id"])

    op.create_table(
        "pool_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("game_number", sa.Integer(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("scheduled_time", sa.String(length=20), nullable=True),
        sa.Column("court_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("team_a_pods", sa.JSON(), nullable=False),
        sa.Column("team_b_pods", sa.JSON(), nullable=False),
        sa.Column("sitting_pods", sa.JSON(), nullable=False),
        sa.Column("team_a_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_b_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_pool_matches_tournament_id", "pool_matches", ["tournament_id"])

    op.create_table(
        "pool_standings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("pod_id", sa.Integer(), sa.ForeignKey("pods.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_for", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_against", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("tournament_id", "pod_id", name="uq_standing_tournament_pod"),
    )
    op.create_index("ix_pool_standings_tournament_id", "pool_standings", ["tournament_id"])

    op.create_table(
        "bracket_teams",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("team_name", sa.String(), nullable=False),
        sa.Column("seed_rank", sa.Integer(), nullable=False),
        sa.Column("pod1_id", sa.Integer(), sa.ForeignKey("pods.id"), nullable=False),
        sa.Column("pod2_id", sa.Integer(), sa.ForeignKey("pods.id"), nullable=False),
        sa.Column("pod3_id", sa.Integer(), sa.ForeignKey("pods.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_bracket_teams_tournament_id", "bracket_teams", ["tournament_id"])

    op.create_table(
        "bracket_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("game_number", sa.Integer(), nullable=False),
        sa.Column("bracket_type", sa.String(), nullable=False),
        sa.Column("team_a_id", sa.Integer(), sa.ForeignKey("bracket_teams.id"), nullable=True),
        sa.Column("team_b_id", sa.Integer(), sa.ForeignKey("bracket_teams.id"), nullable=True),
        sa.Column("team_a_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_b_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tournament_id", "game_number", name="uq_bracket_game_number"),
    )
    op.create_index("ix_bracket_matches_tournament_id", "bracket_matches", ["tournament_id"])

    op.create_table(
        "tournament_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), _tournament_fk(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tournament_roles_tournament_id", "tournament_roles", ["tournament_id"])
    op.create_index("ix_tournament_roles_user_id", "tournament_roles", ["user_id"])

    op.create_table(
        "organizer_whitelist",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False, unique=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("added_by", sa.String(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
    )


def downgrade():
    op.drop_table("organizer_whitelist")
    op.drop_index("ix_tournament_roles_user_id", table_name="tournament_roles")
    op.drop_index("ix_tournament_roles_tournament_id", table_name="tournament_roles")
    op.drop_table("tournament_roles")
    op.drop_index("ix_bracket_matches_tournament_id", table_name="bracket_matches")
    op.drop_table("bracket_matches")
    op.drop_index("ix_bracket_teams_tournament_id", table_name="bracket_teams")
    op.drop_table("bracket_teams")
    op.drop_index("ix_pool_standings_tournament_id", table_name="pool_standings")
    op.drop_table("pool_standings")
    op.drop_index("ix_pool_matches_tournament_id", table_name="pool_matches")
    op.drop_table("pool_matches")
    op.drop_index("ix_pods_tournament_id", table_name="pods")
    op.drop_table("pods")
    op.drop_index("ix_tournaments_slug", table_name="tournaments")
    op.drop_table("tournaments")
