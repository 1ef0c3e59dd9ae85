"""
Analytics router.

Thin call site over AnalyticsEngine: panels post samples that the data layer
already fetched and receive buckets, colors and projections back. Contract
violations (AnalyticsError) are turned into 422 responses by the handler
registered in kpiboard.main.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from kpiboard.config import Settings, get_settings
from kpiboard.engine.comparison import build_kpi_card, points_in_range
from kpiboard.engine.derived import funnel_conversion_rates, mean_metric, ratio_metric
from kpiboard.engine.errors import InvalidRange
from kpiboard.engine.heatmap import HeatMapNormalizer
from kpiboard.engine.periods import generate_periods, preset_range
from kpiboard.engine.pipeline import AnalyticsEngine
from kpiboard.engine.run_rate import project_period
from kpiboard.models.enums import RollUpPolicy
from kpiboard.models.periods import TimePeriod
from kpiboard.models.samples import MetricSample
from kpiboard.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class RatioMetricRequest(BaseModel):
    """numerator / denominator * scale, computed per bucket."""

    name: str
    numerator: str
    denominator: str
    roll_up: RollUpPolicy
    scale: float = 100.0


class MeanMetricRequest(BaseModel):
    """Per-sample mean of an accumulator, computed per bucket."""

    name: str
    field: str
    roll_up: RollUpPolicy


class AggregateRequest(BaseModel):
    """Request to aggregate samples over a date range."""

    range_start: date
    range_end: date
    granularity: str
    samples: list[MetricSample] = Field(default_factory=list)
    dimension_keys: Optional[list[str]] = None
    ratios: list[RatioMetricRequest] = Field(default_factory=list)
    means: list[MeanMetricRequest] = Field(default_factory=list)
    policies: dict[str, RollUpPolicy] = Field(default_factory=dict)
    include_total: bool = True
    track_on_time: bool = False


class HeatMapRequest(BaseModel):
    """Series to color."""

    values: list[float]


class RunRateRequest(BaseModel):
    """Partial period to project; ``today`` is supplied by the caller."""

    period_start: date
    period_end: date
    value_so_far: float
    today: date


class FunnelRequest(BaseModel):
    """Stage counts in funnel order, plus the reference mode (required)."""

    stage_counts: dict[str, float]
    mode: str


class KpiPoint(BaseModel):
    """One dated KPI value."""

    day: date
    value: float


class KpiCardRequest(BaseModel):
    """
    KPI history plus its targets.

    ``preset`` narrows the history to a named range resolved against
    ``today``; ``custom`` uses ``range_start`` and ``range_end``.
    """

    points: list[KpiPoint] = Field(default_factory=list)
    default_target: float = 0.0
    monthly_targets: dict[str, float] = Field(default_factory=dict)
    preset: Optional[str] = None
    today: Optional[date] = None
    range_start: Optional[date] = None
    range_end: Optional[date] = None


def get_engine(settings: Settings = Depends(get_settings)) -> AnalyticsEngine:
    return AnalyticsEngine.from_settings(settings)


@router.get("/periods")
async def list_periods(range_start: date, range_end: date, granularity: str):
    """Partition a range into periods without aggregating anything."""
    periods = generate_periods(range_start, range_end, granularity)
    return {"success": True, "data": [p.model_dump(mode="json") for p in periods]}


@router.post("/aggregate")
async def aggregate(
    request: AggregateRequest,
    engine: AnalyticsEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
):
    """
    Aggregate samples into period x dimension buckets plus a Total row.
    """
    if len(request.samples) > settings.max_samples_per_request:
        logger.warning(
            "aggregate_rejected",
            reason="too_many_samples",
            samples=len(request.samples),
            limit=settings.max_samples_per_request,
        )
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"At most {settings.max_samples_per_request} samples per request",
        )

    definitions = [
        ratio_metric(r.name, r.numerator, r.denominator, r.roll_up, scale=r.scale)
        for r in request.ratios
    ] + [mean_metric(m.name, m.field, m.roll_up) for m in request.means]

    logger.info(
        "aggregate_start",
        granularity=request.granularity,
        samples=len(request.samples),
        derived_metrics=len(definitions),
    )

    result = engine.aggregate(
        request.range_start,
        request.range_end,
        request.granularity,
        request.samples,
        dimension_keys=request.dimension_keys,
        definitions=definitions,
        policies=request.policies,
        include_total=request.include_total,
        track_on_time=request.track_on_time,
    )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.post("/heatmap")
async def heat_map(
    request: HeatMapRequest,
    settings: Settings = Depends(get_settings),
):
    """Color a series on the red-yellow-green scale."""
    normalizer = HeatMapNormalizer(alpha=settings.heatmap_alpha)
    colors = normalizer.colorize(request.values)
    return {"success": True, "data": [c.model_dump() for c in colors]}


@router.post("/run-rate")
async def run_rate(request: RunRateRequest):
    """
    Project a partial period. ``data`` is null when no projection applies.
    """
    if request.period_start > request.period_end:
        raise InvalidRange(request.period_start, request.period_end)
    period = TimePeriod(start=request.period_start, end=request.period_end, label="current")
    projection = project_period(period, request.value_so_far, request.today)
    data = projection.model_dump(mode="json") if projection else None
    return {"success": True, "data": data}


@router.post("/funnel")
async def funnel(request: FunnelRequest):
    """Conversion rates of each stage after the first."""
    rates = funnel_conversion_rates(request.stage_counts, request.mode)
    return {"success": True, "data": {"mode": request.mode, "rates": rates}}


@router.post("/kpi-card")
async def kpi_card(request: KpiCardRequest):
    """Latest value, variation, trend and target attainment of one KPI."""
    points = [(p.day, p.value) for p in request.points]
    if request.preset is not None:
        today = request.today or date.today()
        start, end = preset_range(request.preset, today, request.range_start, request.range_end)
        points = points_in_range(points, start, end)
        logger.debug("kpi_card_range", preset=request.preset, start=str(start), end=str(end))

    card = build_kpi_card(points, request.default_target, request.monthly_targets)
    return {"success": True, "data": card.model_dump(mode="json")}
