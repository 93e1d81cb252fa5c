"""
Forecast Persistence Models

SQLAlchemy tables for financial models (assumption sets), recorded actuals
and saved scenarios, all scoped by project.
"""

from datetime import datetime
from typing import Dict, Any

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, Numeric, JSON,
    Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _num(value):
    return str(value) if value is not None else None


class FinancialModel(Base):
    """
    A named assumption set belonging to a project.

    The assumptions are stored as the JSON form of an AssumptionSet.
    """
    __tablename__ = "forecast_models"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    assumptions_json = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    scenarios = relationship("Scenario", back_populates="model", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_forecast_models_project_name", "project_id", "name"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "assumptions": self.assumptions_json,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ActualsPeriod(Base):
    """Recorded results of one period of a project"""
    __tablename__ = "forecast_actuals"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    period = Column(Integer, nullable=False)  # 0-indexed, matches forecast periods

    revenue = Column(Numeric(20, 6), nullable=False)
    cost = Column(Numeric(20, 6), nullable=False)
    profit = Column(Numeric(20, 6), nullable=False)
    attendance = Column(Numeric(20, 6), nullable=True)

    revenue_breakdown_json = Column(JSON, nullable=True)
    cost_breakdown_json = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    recorded_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "period", name="uq_forecast_actuals_project_period"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "period": self.period,
            "revenue": _num(self.revenue),
            "cost": _num(self.cost),
            "profit": _num(self.profit),
            "attendance": _num(self.attendance),
            "revenue_breakdown": self.revenue_breakdown_json or {},
            "cost_breakdown": self.cost_breakdown_json or {},
            "notes": self.notes,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


class Scenario(Base):
    """A saved set of parameter deltas against a baseline model"""
    __tablename__ = "forecast_scenarios"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    model_id = Column(Integer, ForeignKey("forecast_models.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    parameter_deltas_json = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    model = relationship("FinancialModel", back_populates="scenarios")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "model_id": self.model_id,
            "name": self.name,
            "description": self.description,
            "parameter_deltas": self.parameter_deltas_json,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
