"""add_monitoring_and_traffic

Revision ID: c54d0e8a1f62
Revises: 8b27e4d5c913
Create Date: 2025-06-17 16:45:03.118920

"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = 'c54d0e8a1f62'
down_revision: str | Sequence[str] | None = '8b27e4d5c913'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
-- Social media posts collected for sentiment monitoring
CREATE TABLE IF NOT EXISTS social_posts (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    platform VARCHAR(20) NOT NULL DEFAULT 'x',
    post_id VARCHAR(100) NOT NULL UNIQUE,
    author VARCHAR(255) NOT NULL,
    content TEXT NOT NULL,
    location VARCHAR(255),
    posted_at TIMESTAMP WITH TIME ZONE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS sentiment_analyses (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    post_id VARCHAR(100) NOT NULL UNIQUE REFERENCES social_posts(post_id) ON DELETE CASCADE,
    sentiment VARCHAR(10) NOT NULL CHECK (sentiment IN ('positive', 'negative', 'neutral')),
    confidence DOUBLE PRECISION NOT NULL DEFAULT 0.5,
    relevance_score DOUBLE PRECISION NOT NULL DEFAULT 0,
    topics JSONB NOT NULL DEFAULT '[]'::jsonb,
    parish VARCHAR(100),
    risk_level VARCHAR(10) NOT NULL DEFAULT 'low' CHECK (risk_level IN ('low', 'medium', 'high')),
    summary TEXT,
    key_points JSONB NOT NULL DEFAULT '[]'::jsonb,
    is_actionable BOOLEAN NOT NULL DEFAULT FALSE,
    analyzed_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_sentiment_analyzed_at ON sentiment_analyses(analyzed_at DESC);
CREATE INDEX IF NOT EXISTS idx_sentiment_parish ON sentiment_analyses(parish);

-- Keyword configuration for social monitoring
CREATE TABLE IF NOT EXISTS monitoring_configs (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    config_name VARCHAR(255) NOT NULL,
    category VARCHAR(50) NOT NULL,
    keywords TEXT[] NOT NULL DEFAULT '{}',
    is_enabled BOOLEAN NOT NULL DEFAULT TRUE,
    description TEXT,
    created_by VARCHAR(100) NOT NULL DEFAULT 'system',
    priority INTEGER NOT NULL DEFAULT 2 CHECK (priority BETWEEN 1 AND 3),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    last_updated TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_monitoring_configs_category ON monitoring_configs(category);

-- Traffic observations for routes to polling stations
CREATE TABLE IF NOT EXISTS traffic_analytics_history (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    polling_station_id UUID NOT NULL REFERENCES polling_stations(id) ON DELETE CASCADE,
    route_origin_type VARCHAR(30) NOT NULL DEFAULT 'custom',
    route_origin_name VARCHAR(255),
    origin_lat DOUBLE PRECISION NOT NULL,
    origin_lng DOUBLE PRECISION NOT NULL,
    destination_lat DOUBLE PRECISION NOT NULL,
    destination_lng DOUBLE PRECISION NOT NULL,
    distance_meters INTEGER,
    normal_duration INTEGER,
    traffic_duration INTEGER,
    delay_minutes INTEGER NOT NULL DEFAULT 0,
    traffic_severity VARCHAR(10) NOT NULL DEFAULT 'light'
        CHECK (traffic_severity IN ('light', 'moderate', 'heavy', 'severe')),
    average_speed DOUBLE PRECISION,
    congestion_level INTEGER CHECK (congestion_level BETWEEN 1 AND 10),
    time_of_day INTEGER NOT NULL CHECK (time_of_day BETWEEN 0 AND 23),
    day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
    data_source VARCHAR(30) NOT NULL DEFAULT 'google_maps',
    recorded_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_traffic_history_station
    ON traffic_analytics_history(polling_station_id, recorded_at DESC);
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
DROP TABLE IF EXISTS traffic_analytics_history CASCADE;
DROP TABLE IF EXISTS monitoring_configs CASCADE;
DROP TABLE IF EXISTS sentiment_analyses CASCADE;
DROP TABLE IF EXISTS social_posts CASCADE;
    """)
