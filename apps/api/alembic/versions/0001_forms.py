"""Forms catalog

Revision ID: 0001_forms
Revises:
Create Date: 2026-10-19

Tables:
- forms: tracked external forms with click and submission counters
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_forms"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "forms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("form_url", sa.Text(), nullable=True),
        sa.Column("clicks", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("submissions", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("submissions >= 0", name="ck_forms_submissions_non_negative"),
        sa.CheckConstraint("clicks >= 0", name="ck_forms_clicks_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_forms"),
        # Unique slug keeps concurrent uploads from creating the same form twice
        sa.UniqueConstraint("slug", name="uq_forms_slug"),
    )
    op.create_index("idx_forms_created_at", "forms", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_forms_created_at", table_name="forms")
    op.drop_table("forms")
