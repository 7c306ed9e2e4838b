"""Prospecting schema

Revision ID: 7c3e9a1f52d4
Revises:
Create Date: 2026-03-02 09:12:41.530112

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '7c3e9a1f52d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create search_jobs and claimed_prospects from the SQL model files."""
    from pathlib import Path

    base_dir = Path(__file__).parent.parent.parent
    models_dir = base_dir / "prospector" / "db" / "models"

    # Numbered files, applied in order
    for sql_file in sorted(models_dir.glob("*.sql")):
        op.execute(sql_file.read_text())


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TABLE IF EXISTS claimed_prospects CASCADE")
    op.execute("DROP TABLE IF EXISTS search_jobs CASCADE")
