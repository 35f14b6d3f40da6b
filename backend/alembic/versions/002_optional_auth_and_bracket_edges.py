"""Optional-auth registration, stored pod numbers, bracket feeder edges, email log.

Revision ID: 002_optional_auth_edges
Revises: 001_initial_schema
"""

from alembic import op
import sqlalchemy as sa


revision = "002_optional_auth_edges"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    # -----------------------------------------------------------------------
    # 1. Anonymous registration: tournaments may skip sign-in, pods keep user_id null
    # -----------------------------------------------------------------------
    op.add_column(
        "tournaments",
        sa.Column("require_auth", sa.Boolean(), nullable=False, server_default=sa.text("1")),
    )
    with op.batch_alter_table("pods") as batch_op:
        batch_op.alter_column("user_id", existing_type=sa.String(), nullable=True)
        batch_op.add_column(sa.Column("player3", sa.String(), nullable=True))
        batch_op.add_column(sa.Column("pod_number", sa.Integer(), nullable=True))

    # -----------------------------------------------------------------------
    # 2. Stored pod numbers replace numbering by id order
    # -----------------------------------------------------------------------
    op.execute(
        """
        UPDATE pods SET pod_number = (
            SELECT COUNT(*) FROM pods AS earlier
            WHERE earlier.tournament_id = pods.tournament_id AND earlier.id <= pods.id
        )
        """
    )
    with op.batch_alter_table("pods") as batch_op:
        batch_op.alter_column("pod_number", existing_type=sa.Integer(), nullable=False)
        batch_op.create_unique_constraint("uq_tournament_pod_number", ["tournament_id", "pod_number"])

    # -----------------------------------------------------------------------
    # 3. Bracket games as a graph: feeder edges and recorded winner
    # -----------------------------------------------------------------------
    with op.batch_alter_table("bracket_matches") as batch_op:
        batch_op.add_column(sa.Column("source_game_a", sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column("source_a_role", sa.String(), nullable=True))
        batch_op.add_column(sa.Column("source_game_b", sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column("source_b_role", sa.String(), nullable=True))
        batch_op.add_column(sa.Column("winner_team_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_bracket_matches_winner_team", "bracket_teams", ["winner_team_id"], ["id"]
        )

    # -----------------------------------------------------------------------
    # 4. email_log - record of every email sent
    # -----------------------------------------------------------------------
    op.create_table(
        "email_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "tournament_id",
            sa.Integer(),
            sa.ForeignKey("tournaments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("pod_id", sa.Integer(), sa.ForeignKey("pods.id", ondelete="SET NULL"), nullable=True),
        sa.Column("recipient", sa.String(), nullable=False),
        sa.Column("subject", sa.String(), nullable=False),
        sa.Column("message_type", sa.String(), nullable=False),
        sa.Column("provider_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="queued"),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_email_log_tournament_id", "email_log", ["tournament_id"])


def downgrade():
    op.drop_index("ix_email_log_tournament_id", table_name="email_log")
    op.drop_table("email_log")

    with op.batch_alter_table("bracket_matches") as batch_op:
        batch_op.drop_constraint("fk_bracket_matches_winner_team", type_="foreignkey")
        batch_op.drop_column("winner_team_id")
        batch_op.drop_column("source_b_role")
        batch_op.drop_column("source_game_b")
        batch_op.drop_column("source_a_role")
        batch_op.drop_column("source_game_a")

    with op.batch_alter_table("pods") as batch_op:
        batch_op.drop_constraint("uq_tournament_pod_number", type_="unique")
        batch_op.drop_column("pod_number")
        batch_op.drop_column("player3")
        batch_op.alter_column("user_id", existing_type=sa.String(), nullable=False)

    op.drop_column("tournaments", "require_auth")
