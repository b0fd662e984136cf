"""create engagement tables

Revision ID: 0001_engagement
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_engagement'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False, server_default='twitter'),
        sa.Column('provider_account_id', sa.String(255), nullable=True),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('profile_image', sa.String(1000), nullable=True),
        sa.Column('follower_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('last_tweet_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_follower_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_tweets_synced', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('sync_enabled', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])
    op.create_index('ix_accounts_provider_account_id', 'accounts', ['provider_account_id'])

    op.create_table(
        'tweets',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('twitter_account_id', sa.String(255), nullable=True),
        sa.Column('twitter_tweet_id', sa.String(255), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('like_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('retweet_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('reply_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('impression_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('media', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tweets_user_id', 'tweets', ['user_id'])
    op.create_index('ix_tweets_twitter_account_id', 'tweets', ['twitter_account_id'])
    op.create_index('ix_tweets_created_at', 'tweets', ['created_at'])

    op.create_table(
        'engagement_snapshots',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tweet_id', sa.String(36), nullable=False),
        sa.Column('account_id', sa.String(36), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('tweet_age_days', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('like_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('retweet_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('reply_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('impression_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tweet_id'], ['tweets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tweet_id', 'snapshot_date', name='uix_engagement_snapshots_tweet_date'),
    )
    op.create_index('ix_engagement_snapshots_tweet_id', 'engagement_snapshots', ['tweet_id'])

    op.create_table(
        'follower_history',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('account_id', sa.String(36), nullable=False),
        sa.Column('follower_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('following_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_follower_history_account_id', 'follower_history', ['account_id'])

    op.create_table(
        'account_sync_status',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('account_id', sa.String(36), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sync_status', sa.String(20), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('tweets_synced', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('tweets_failed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('next_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id'),
    )

    op.create_table(
        'data_retention_settings',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('snapshot_retention_days', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('snapshot_active_tweet_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('follower_history_retention_days', sa.Integer(), nullable=False, server_default='365'),
        sa.Column('daily_stats_retention_days', sa.Integer(), nullable=False, server_default='180'),
        sa.Column('content_analytics_retention_days', sa.Integer(), nullable=False, server_default='180'),
        sa.Column('auto_cleanup_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_cleanup_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'daily_stats',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('account_id', sa.String(36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('followers', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('following', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('total_likes', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('total_replies', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('total_retweets', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('total_impressions', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('engagement_rate', sa.Float(), nullable=True, server_default='0'),
        sa.Column('top_tweet_id', sa.String(255), nullable=True),
        sa.Column('posts_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'date', name='uix_daily_stats_account_date'),
    )
    op.create_index('ix_daily_stats_account_id', 'daily_stats', ['account_id'])

    op.create_table(
        'content_analytics',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('tweet_id', sa.String(36), nullable=False),
        sa.Column('has_image', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('has_video', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('has_gif', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('has_link', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('media_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('hashtag_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('hashtags', sa.JSON(), nullable=True),
        sa.Column('mention_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('char_count', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('post_hour', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('post_day', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('post_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('engagement_score', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tweet_id'], ['tweets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tweet_id'),
    )

    op.create_table(
        'insights',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('insight_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('dismissed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_insights_user_type', 'insights', ['user_id', 'insight_type'])


def downgrade() -> None:
    op.drop_index('ix_insights_user_type', table_name='insights')
    op.drop_table('insights')
    op.drop_table('content_analytics')
    op.drop_index('ix_daily_stats_account_id', table_name='daily_stats')
    op.drop_table('daily_stats')
    op.drop_table('data_retention_settings')
    op.drop_table('account_sync_status')
    op.drop_index('ix_follower_history_account_id', table_name='follower_history')
    op.drop_table('follower_history')
    op.drop_index('ix_engagement_snapshots_tweet_id', table_name='engagement_snapshots')
    op.drop_table('engagement_snapshots')
    op.drop_index('ix_tweets_created_at', table_name='tweets')
    op.drop_index('ix_tweets_twitter_account_id', table_name='tweets')
    op.drop_index('ix_tweets_user_id', table_name='tweets')
    op.drop_table('tweets')
    op.drop_index('ix_accounts_provider_account_id', table_name='accounts')
    op.drop_index('ix_accounts_user_id', table_name='accounts')
    op.drop_table('accounts')
