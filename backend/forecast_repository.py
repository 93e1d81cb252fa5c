"""
Forecast Repository

Load / save of assumption sets, actuals and scenarios by ID, filtered by
project. Converts between database rows and engine value objects so the
engine never sees the database.
"""

from typing import Optional, List
import logging

from sqlalchemy.orm import Session

from forecast_db_models import FinancialModel, ActualsPeriod, Scenario
from forecast_models import (
    AssumptionSet, ActualsEntry, ScenarioParameterDeltas, decimal_map_to_dict, to_decimal,
)

logger = logging.getLogger(__name__)


class RecordNotFoundError(Exception):
    """Raised when a model, scenario or actuals row does not exist for the project"""
    pass


class ForecastRepository:
    """Persistence collaborator of the forecast engine"""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # MODELS
    # =========================================================================

    def get_model(self, model_id: int, project_id: Optional[str] = None) -> FinancialModel:
        query = self.db.query(FinancialModel).filter(FinancialModel.id == model_id)
        if project_id is not None:
            query = query.filter(FinancialModel.project_id == project_id)
        model = query.first()
        if not model:
            raise RecordNotFoundError(f"Financial model {model_id} not found")
        return model

    def list_models(self, project_id: str) -> List[FinancialModel]:
        return self.db.query(FinancialModel).filter(
            FinancialModel.project_id == project_id
        ).order_by(FinancialModel.created_at.desc()).all()

    def load_assumptions(self, model_id: int, project_id: Optional[str] = None) -> AssumptionSet:
        return AssumptionSet.from_dict(self.get_model(model_id, project_id).assumptions_json)

    def save_model(
        self,
        project_id: str,
        name: str,
        assumptions: AssumptionSet,
        description: Optional[str] = None,
        model_id: Optional[int] = None,
    ) -> FinancialModel:
        """Create a model, or replace the assumptions of an existing one"""
        if model_id is not None:
            model = self.get_model(model_id, project_id)
            model.name = name
            model.description = description
            model.assumptions_json = assumptions.to_dict()
        else:
            model = FinancialModel(
                project_id=project_id,
                name=name,
                description=description,
                assumptions_json=assumptions.to_dict(),
            )
            self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info(f"Saved financial model {model.id} for project {project_id}")
        return model

    def delete_model(self, model_id: int, project_id: Optional[str] = None) -> None:
        model = self.get_model(model_id, project_id)
        self.db.delete(model)
        self.db.commit()
        logger.info(f"Deleted financial model {model_id}")

    # =========================================================================
    # ACTUALS
    # =========================================================================

    def list_actuals(self, project_id: str) -> List[ActualsEntry]:
        rows = self.db.query(ActualsPeriod).filter(
            ActualsPeriod.project_id == project_id
        ).order_by(ActualsPeriod.period).all()
        return [self._to_entry(row) for row in rows]

    def save_actual(self, entry: ActualsEntry, project_id: Optional[str] = None) -> ActualsPeriod:
        """Insert or replace the actuals of one period"""
        project_id = project_id or entry.project_id
        if not project_id:
            raise ValueError("Actuals must belong to a project")

        row = self.db.query(ActualsPeriod).filter(
            ActualsPeriod.project_id == project_id,
            ActualsPeriod.period == entry.period,
        ).first()
        if row is None:
            row = ActualsPeriod(project_id=project_id, period=entry.period)
            self.db.add(row)

        row.revenue = entry.revenue
        row.cost = entry.cost
        row.profit = entry.profit
        row.attendance = entry.attendance
        row.revenue_breakdown_json = decimal_map_to_dict(entry.revenue_breakdown)
        row.cost_breakdown_json = decimal_map_to_dict(entry.cost_breakdown)
        row.notes = entry.notes

        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Recorded actuals for project {project_id} period {entry.period}")
        return row

    def delete_actual(self, project_id: str, period: int) -> None:
        row = self.db.query(ActualsPeriod).filter(
            ActualsPeriod.project_id == project_id,
            ActualsPeriod.period == period,
        ).first()
        if not row:
            raise RecordNotFoundError(f"No actuals for project {project_id} period {period}")
        self.db.delete(row)
        self.db.commit()

    @staticmethod
    def _to_entry(row: ActualsPeriod) -> ActualsEntry:
        return ActualsEntry(
            project_id=row.project_id,
            period=row.period,
            revenue=to_decimal(row.revenue),
            cost=to_decimal(row.cost),
            profit=to_decimal(row.profit),
            attendance=to_decimal(row.attendance) if row.attendance is not None else None,
            revenue_breakdown={k: to_decimal(v) for k, v in (row.revenue_breakdown_json or {}).items()},
            cost_breakdown={k: to_decimal(v) for k, v in (row.cost_breakdown_json or {}).items()},
            notes=row.notes,
        )

    # =========================================================================
    # SCENARIOS
    # =========================================================================

    def get_scenario(self, scenario_id: int, project_id: Optional[str] = None) -> Scenario:
        query = self.db.query(Scenario).filter(Scenario.id == scenario_id)
        if project_id is not None:
            query = query.filter(Scenario.project_id == project_id)
        scenario = query.first()
        if not scenario:
            raise RecordNotFoundError(f"Scenario {scenario_id} not found")
        return scenario

    def list_scenarios(self, project_id: str, model_id: Optional[int] = None) -> List[Scenario]:
        query = self.db.query(Scenario).filter(Scenario.project_id == project_id)
        if model_id is not None:
            query = query.filter(Scenario.model_id == model_id)
        return query.order_by(Scenario.created_at.desc()).all()

    def load_deltas(self, scenario_id: int, project_id: Optional[str] = None) -> ScenarioParameterDeltas:
        return ScenarioParameterDeltas.from_dict(self.get_scenario(scenario_id, project_id).parameter_deltas_json)

    def save_scenario(
        self,
        project_id: str,
        model_id: int,
        name: str,
        deltas: ScenarioParameterDeltas,
        description: Optional[str] = None,
    ) -> Scenario:
        # Baseline must exist within the same project
        self.get_model(model_id, project_id)
        scenario = Scenario(
            project_id=project_id,
            model_id=model_id,
            name=name,
            description=description,
            parameter_deltas_json=deltas.to_dict(),
        )
        self.db.add(scenario)
        self.db.commit()
        self.db.refresh(scenario)
        logger.info(f"Saved scenario {scenario.id} against model {model_id}")
        return scenario

    def delete_scenario(self, scenario_id: int, project_id: Optional[str] = None) -> None:
        scenario = self.get_scenario(scenario_id, project_id)
        self.db.delete(scenario)
        self.db.commit()
