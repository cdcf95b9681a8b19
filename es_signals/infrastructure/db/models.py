"""
Database Models (SQLAlchemy ORM)
Insert-only audit tables - NO DELETES
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, Numeric, String

from es_signals.infrastructure.db.database import Base
from es_signals.utils.time import now_utc_naive


class RegimeHistoryModel(Base):
    """Regime classification per iteration"""
    __tablename__ = "regime_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, default=now_utc_naive)
    regime = Column(String(50), nullable=False)
    confidence = Column(Numeric(5, 4), nullable=False)
    duration = Column(Integer, nullable=False, default=1)
    vix_level = Column(Numeric(6, 2), nullable=True)
    gex_level = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_regime_history_timestamp", "timestamp"),
    )


class TradingSignalModel(Base):
    """Actionable signals above the confidence threshold"""
    __tablename__ = "trading_signals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, default=now_utc_naive)
    signal_type = Column(String(20), nullable=False, index=True)  # strong_buy .. strong_sell
    confidence = Column(Numeric(5, 4), nullable=False)
    regime = Column(String(50), nullable=False)
    suggested_tp = Column(Integer, nullable=False)
    suggested_sl = Column(Integer, nullable=False)
    entry_price = Column(Numeric(12, 2), nullable=False)
    features = Column(JSON, nullable=True)
    reasoning = Column(JSON, nullable=True)
    executed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        Index("ix_trading_signals_timestamp", "timestamp"),
    )


class FeatureImportanceModel(Base):
    """Sampled feature telemetry"""
    __tablename__ = "feature_importance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, default=now_utc_naive)
    feature_name = Column(String(50), nullable=False)
    importance = Column(Numeric(10, 6), nullable=False)
    category = Column(String(20), nullable=True)
    model_type = Column(String(20), nullable=False, default="ensemble")

    __table_args__ = (
        Index("ix_feature_importance_timestamp", "timestamp"),
    )
