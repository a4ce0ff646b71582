"""Add prophecy tables

Revision ID: 001_add_prophecy_tables
Revises:
Create Date: 2025-06-29 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_add_prophecy_tables'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    platform_type_enum = sa.Enum('TIKTOK', 'INSTAGRAM', 'YOUTUBE', 'TWITTER', 'FACEBOOK', name='platformtype')

    # Historical clip performance, written by the ingestion pipeline
    op.create_table('analytics_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('clip_id', sa.String(length=64), nullable=False),
        sa.Column('platform', platform_type_enum, nullable=False),
        sa.Column('views', sa.Integer(), nullable=False),
        sa.Column('likes', sa.Integer(), nullable=False),
        sa.Column('comments', sa.Integer(), nullable=False),
        sa.Column('shares', sa.Integer(), nullable=False),
        sa.Column('watch_time', sa.Float(), nullable=False),
        sa.Column('posted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_analytics_events_id'), 'analytics_events', ['id'], unique=False)
    op.create_index(op.f('ix_analytics_events_user_id'), 'analytics_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_analytics_events_clip_id'), 'analytics_events', ['clip_id'], unique=False)
    op.create_index(op.f('ix_analytics_events_posted_at'), 'analytics_events', ['posted_at'], unique=False)

    # Append-only feedback on past predictions
    op.create_table('user_feedback',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('prophecy_id', sa.String(length=64), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('was_helpful', sa.Boolean(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_feedback_user_id'), 'user_feedback', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_feedback_prophecy_id'), 'user_feedback', ['prophecy_id'], unique=False)
    op.create_index(op.f('ix_user_feedback_created_at'), 'user_feedback', ['created_at'], unique=False)

    # Per-user calibration factors
    op.create_table('prediction_parameters',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('view_multiplier', sa.Float(), nullable=False),
        sa.Column('like_multiplier', sa.Float(), nullable=False),
        sa.Column('comment_multiplier', sa.Float(), nullable=False),
        sa.Column('confidence_adjustment', sa.Float(), nullable=False),
        sa.Column('sample_size', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('user_id')
    )

def downgrade():
    op.drop_table('prediction_parameters')
    op.drop_index(op.f('ix_user_feedback_created_at'), table_name='user_feedback')
    op.drop_index(op.f('ix_user_feedback_prophecy_id'), table_name='user_feedback')
    op.drop_index(op.f('ix_user_feedback_user_id'), table_name='user_feedback')
    op.drop_table('user_feedback')
    op.drop_index(op.f('ix_analytics_events_posted_at'), table_name='analytics_events')
    op.drop_index(op.f('ix_analytics_events_clip_id'), table_name='analytics_events')
    op.drop_index(op.f('ix_analytics_events_user_id'), table_name='analytics_events')
    op.drop_index(op.f('ix_analytics_events_id'), table_name='analytics_events')
    op.drop_table('analytics_events')
    sa.Enum(name='platformtype').drop(op.get_bind(), checkfirst=True)
