from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

tent_type = sa.Enum("Black", "Blue", "White", name="tent_type")
role = sa.Enum("Captain", "Member", name="role")
availability_status = sa.Enum("available", "maybe", "unavailable", name="availability_status")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "tents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("join_code", sa.String(), nullable=False),
        sa.Column("tent_type", tent_type, nullable=False, server_default="Black"),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tents_join_code", "tents", ["join_code"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("tent_id", sa.Uuid(), sa.ForeignKey("tents.id"), nullable=True),
        sa.Column("role", role, nullable=False, server_default="Member"),
        *_timestamps(),
    )
    op.create_index("ix_profiles_tent_id", "profiles", ["tent_id"], unique=False)

    op.create_table(
        "shifts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tent_id", sa.Uuid(), sa.ForeignKey("tents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("required_count", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("is_grace", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="ck_shifts_range"),
    )
    op.create_index("ix_shifts_tent_id", "shifts", ["tent_id"], unique=False)

    op.create_table(
        "assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shift_id", sa.Uuid(), sa.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("shift_id", "user_id", name="uq_assignments_shift_user"),
    )
    op.create_index("ix_assignments_shift_id", "assignments", ["shift_id"], unique=False)
    op.create_index("ix_assignments_user_id", "assignments", ["user_id"], unique=False)

    op.create_table(
        "availabilities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tent_id", sa.Uuid(), sa.ForeignKey("tents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("status", availability_status, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("start_time < end_time", name="ck_availabilities_range"),
    )
    op.create_index("ix_availabilities_tent_id", "availabilities", ["tent_id"], unique=False)
    op.create_index(
        "ix_availabilities_user_id_start_time",
        "availabilities",
        ["user_id", "start_time"],
        unique=False,
    )


def downgrade():
    op.drop_index("ix_availabilities_user_id_start_time", table_name="availabilities")
    op.drop_index("ix_availabilities_tent_id", table_name="availabilities")
    op.drop_table("availabilities")

    op.drop_index("ix_assignments_user_id", table_name="assignments")
    op.drop_index("ix_assignments_shift_id", table_name="assignments")
    op.drop_table("assignments")

    op.drop_index("ix_shifts_tent_id", table_name="shifts")
    op.drop_table("shifts")

    op.drop_index("ix_profiles_tent_id", table_name="profiles")
    op.drop_table("profiles")

    op.drop_index("ix_tents_join_code", table_name="tents")
    op.drop_table("tents")

    availability_status.drop(op.get_bind(), checkfirst=True)
    role.drop(op.get_bind(), checkfirst=True)
    tent_type.drop(op.get_bind(), checkfirst=True)
