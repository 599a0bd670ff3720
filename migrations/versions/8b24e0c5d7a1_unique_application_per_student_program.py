"""Unique application per student and program

Revision ID: 8b24e0c5d7a1
Revises: 3f1c9a7d2b10
Create Date: 2025-10-02 16:40:27.905114

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8b24e0c5d7a1'
down_revision = '3f1c9a7d2b10'
branch_labels = None
depends_on = None

INDEX_NAME = 'ix_application_student_program'


def upgrade():
    conn = op.get_bind()
    inspector = sa.inspect(conn)

    existing = [ix['name'] for ix in inspector.get_indexes('application')]
    if INDEX_NAME in existing:
        print(f"Index '{INDEX_NAME}' already exists. Skipping.")
        return

    # Keep the earliest application per (student, program); ties go to the lowest id.
    # Dependent rows go first so the cleanup does not rely on ON DELETE support.
    duplicates = sa.text("""
        SELECT a.id FROM application a
        WHERE EXISTS (
            SELECT 1 FROM application b
            WHERE b.student_id = a.student_id AND b.program_id = a.program_id
              AND (b.date_created < a.date_created
                   OR (b.date_created = a.date_created AND b.id < a.id))
        )
    """)
    duplicate_ids = [row[0] for row in conn.execute(duplicates)]
    if duplicate_ids:
        print(f"Removing {len(duplicate_ids)} duplicate applications.")
        params = {'ids': duplicate_ids}
        in_ids = sa.bindparam('ids', expanding=True)
        conn.execute(sa.text("DELETE FROM subject_row WHERE proposal_id IN "
                             "(SELECT id FROM subject_proposal WHERE application_id IN :ids)")
                     .bindparams(in_ids), params)
        conn.execute(sa.text("DELETE FROM subject_proposal WHERE application_id IN :ids").bindparams(in_ids), params)
        conn.execute(sa.text("DELETE FROM documentation WHERE application_id IN :ids").bindparams(in_ids), params)
        conn.execute(sa.text("UPDATE notification SET application_id = NULL WHERE application_id IN :ids")
                     .bindparams(in_ids), params)
        conn.execute(sa.text("DELETE FROM application WHERE id IN :ids").bindparams(in_ids), params)

    with op.batch_alter_table('application', schema=None) as batch_op:
        batch_op.create_index(INDEX_NAME, ['student_id', 'program_id'], unique=True)


def downgrade():
    with op.batch_alter_table('application', schema=None) as batch_op:
        batch_op.drop_index(INDEX_NAME)
