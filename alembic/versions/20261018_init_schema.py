"""Init schema: leituras + configuracoes_dispositivo

Revision ID: 20261018_init_schema
Revises: 
Create Date: 2026-10-18 12:00:00

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_init_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # leituras
    op.create_table(
        "leituras",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("temperatura", sa.Float(), nullable=False),
        sa.Column("fumaca", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_leituras_device_id", "leituras", ["device_id"], unique=False)
    op.create_index("ix_leituras_timestamp", "leituras", ["timestamp"], unique=False)

    # configuracoes_dispositivo
    op.create_table(
        "configuracoes_dispositivo",
        sa.Column("device_id", sa.String(), primary_key=True, nullable=False),
        sa.Column("push_token", sa.String(), nullable=True),
        sa.Column("limite_fumaca", sa.Float(), nullable=True),
        sa.Column("limite_temperatura", sa.Float(), nullable=True),
        sa.Column("notificacoes_ativas", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("extras", sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"), nullable=True),
        sa.Column("criado_em", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.Column("atualizado_em", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )
    op.create_index("ix_configuracoes_dispositivo_push_token", "configuracoes_dispositivo", ["push_token"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_configuracoes_dispositivo_push_token", table_name="configuracoes_dispositivo")
    op.drop_table("configuracoes_dispositivo")

    op.drop_index("ix_leituras_timestamp", table_name="leituras")
    op.drop_index("ix_leituras_device_id", table_name="leituras")
    op.drop_table("leituras")
