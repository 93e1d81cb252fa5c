"""
Forecast API Endpoints

Forecast generation, scenario previews and actuals analysis, either on
assumption sets posted in the request or on models stored per project.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database import get_db
from forecast_errors import ConfigurationError, PreconditionError
from forecast_models import AssumptionSet, ActualsEntry, ScenarioParameterDeltas
from forecast_generator import ForecastGenerator
from forecast_analysis import ForecastAnalysis
from forecast_accuracy import assess_forecast_accuracy
from forecast_repository import ForecastRepository, RecordNotFoundError
from scenario_comparison import ScenarioRunner, summarize_forecast

router = APIRouter(prefix="/forecast", tags=["Forecast & Scenarios"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class GenerateForecastRequest(BaseModel):
    assumptions: Dict[str, Any]


class ScenarioPreviewRequest(BaseModel):
    assumptions: Dict[str, Any]
    deltas: Dict[str, Any] = Field(default_factory=dict)


class ActualsPayload(BaseModel):
    period: int
    revenue: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    profit: Optional[Decimal] = None
    attendance: Optional[Decimal] = None
    revenue_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    cost_breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    notes: Optional[str] = None


class RecordActualsRequest(ActualsPayload):
    project_id: str


class AnalyzeRequest(BaseModel):
    assumptions: Dict[str, Any]
    actuals: List[ActualsPayload] = Field(default_factory=list)
    comparison_mode: str = "period"
    include_accuracy: bool = True


class CreateModelRequest(BaseModel):
    project_id: str
    name: str
    description: Optional[str] = None
    assumptions: Dict[str, Any]


class CreateScenarioRequest(BaseModel):
    project_id: str
    model_id: int
    name: str
    description: Optional[str] = None
    deltas: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# HELPERS
# =============================================================================

@contextmanager
def engine_errors():
    """Translate engine and repository errors into HTTP errors"""
    try:
        yield
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PreconditionError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _to_entry(payload: ActualsPayload, project_id: Optional[str] = None) -> ActualsEntry:
    return ActualsEntry.from_dict({
        "project_id": project_id,
        "period": payload.period,
        "revenue": payload.revenue,
        "cost": payload.cost,
        "profit": payload.profit,
        "attendance": payload.attendance,
        "revenue_breakdown": payload.revenue_breakdown,
        "cost_breakdown": payload.cost_breakdown,
        "notes": payload.notes,
    })


def _forecast_response(records) -> Dict[str, Any]:
    return {
        "periods": [r.to_dict() for r in records],
        "summary": summarize_forecast(records).to_dict(),
    }


def _analysis_response(result, include_accuracy: bool, project_id: Optional[str] = None) -> Dict[str, Any]:
    response = result.to_dict()
    if include_accuracy:
        response["accuracy"] = {
            metric: assess_forecast_accuracy(result.trend, metric, project_id=project_id).to_dict()
            for metric in ("revenue", "cost", "profit")
        }
    return response


# =============================================================================
# STATELESS ENDPOINTS
# =============================================================================

@router.post("/generate")
async def generate_forecast(request: GenerateForecastRequest):
    """Generate a forecast from posted assumptions"""
    with engine_errors():
        records = ForecastGenerator().generate(AssumptionSet.from_dict(request.assumptions))
    return _forecast_response(records)


@router.post("/scenarios/preview")
async def preview_scenario(request: ScenarioPreviewRequest):
    """Apply deltas to posted assumptions and compare both forecasts"""
    with engine_errors():
        preview = ScenarioRunner().preview(
            AssumptionSet.from_dict(request.assumptions),
            ScenarioParameterDeltas.from_dict(request.deltas),
        )
    return preview.to_dict()


@router.post("/analyze")
async def analyze_forecast(request: AnalyzeRequest):
    """Analyze posted assumptions against posted actuals"""
    with engine_errors():
        result = ForecastAnalysis().analyze_model(
            AssumptionSet.from_dict(request.assumptions),
            [_to_entry(a) for a in request.actuals],
            request.comparison_mode,
        )
    return _analysis_response(result, request.include_accuracy)


# =============================================================================
# MODELS
# =============================================================================

@router.post("/models")
async def create_model(
    request: CreateModelRequest,
    db: Session = Depends(get_db),
):
    """Store an assumption set for a project"""
    with engine_errors():
        assumptions = AssumptionSet.from_dict(request.assumptions)
        model = ForecastRepository(db).save_model(
            request.project_id, request.name, assumptions, description=request.description
        )
    return model.to_dict()


@router.get("/models")
async def list_models(
    project_id: str,
    db: Session = Depends(get_db),
):
    """List models of a project"""
    models = ForecastRepository(db).list_models(project_id)
    return {"models": [m.to_dict() for m in models]}


@router.get("/models/{model_id}")
async def get_model(
    model_id: int,
    project_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Get a stored model"""
    with engine_errors():
        model = ForecastRepository(db).get_model(model_id, project_id)
    return model.to_dict()


@router.get("/models/{model_id}/forecast")
async def get_model_forecast(
    model_id: int,
    project_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Generate the forecast of a stored model"""
    with engine_errors():
        assumptions = ForecastRepository(db).load_assumptions(model_id, project_id)
        records = ForecastGenerator().generate(assumptions)
    return _forecast_response(records)


@router.get("/models/{model_id}/analysis")
async def get_model_analysis(
    model_id: int,
    comparison_mode: str = Query("period"),
    include_accuracy: bool = True,
    db: Session = Depends(get_db),
):
    """Analyze a stored model against the actuals recorded for its project"""
    repo = ForecastRepository(db)
    with engine_errors():
        model = repo.get_model(model_id)
        assumptions = AssumptionSet.from_dict(model.assumptions_json)
        actuals = repo.list_actuals(model.project_id)
        result = ForecastAnalysis().analyze_model(assumptions, actuals, comparison_mode)
    return _analysis_response(result, include_accuracy, project_id=model.project_id)


# =============================================================================
# ACTUALS
# =============================================================================

@router.post("/actuals")
async def record_actuals(
    request: RecordActualsRequest,
    db: Session = Depends(get_db),
):
    """Record (or replace) the actuals of one period"""
    with engine_errors():
        row = ForecastRepository(db).save_actual(_to_entry(request, request.project_id))
    return row.to_dict()


@router.get("/actuals")
async def list_actuals(
    project_id: str,
    db: Session = Depends(get_db),
):
    """List recorded actuals of a project"""
    entries = ForecastRepository(db).list_actuals(project_id)
    return {"actuals": [e.to_dict() for e in entries]}


@router.delete("/actuals/{period}")
async def delete_actuals(
    period: int,
    project_id: str,
    db: Session = Depends(get_db),
):
    """Delete the actuals of one period"""
    with engine_errors():
        ForecastRepository(db).delete_actual(project_id, period)
    return {"deleted": True, "period": period}


# =============================================================================
# SCENARIOS
# =============================================================================

@router.post("/scenarios")
async def create_scenario(
    request: CreateScenarioRequest,
    db: Session = Depends(get_db),
):
    """Save a set of deltas against a stored baseline"""
    with engine_errors():
        scenario = ForecastRepository(db).save_scenario(
            request.project_id,
            request.model_id,
            request.name,
            ScenarioParameterDeltas.from_dict(request.deltas),
            description=request.description,
        )
    return scenario.to_dict()


@router.get("/scenarios")
async def list_scenarios(
    project_id: str,
    model_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """List saved scenarios of a project"""
    scenarios = ForecastRepository(db).list_scenarios(project_id, model_id)
    return {"scenarios": [s.to_dict() for s in scenarios]}


@router.get("/scenarios/{scenario_id}/forecast")
async def get_scenario_forecast(
    scenario_id: int,
    db: Session = Depends(get_db),
):
    """Re-apply a saved scenario to its baseline and compare"""
    repo = ForecastRepository(db)
    with engine_errors():
        scenario = repo.get_scenario(scenario_id)
        baseline = repo.load_assumptions(scenario.model_id, scenario.project_id)
        deltas = ScenarioParameterDeltas.from_dict(scenario.parameter_deltas_json)
        preview = ScenarioRunner().preview(baseline, deltas)
    return {"scenario": scenario.to_dict(), **preview.to_dict()}
