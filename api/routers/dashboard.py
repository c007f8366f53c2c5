"""
Dashboard API Endpoints.

KPI cards. Each metric is computed on its own; a failing metric is reported
with its error while the others still render.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_db, require_admin
from api.models import DashboardResponse, MetricResponse
from domain.catalog import Vendor
from repositories.client import Client as SupabaseClient
from services.stats_service import get_dashboard_metrics

router = APIRouter()


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard KPIs",
    description="Total USD sales, clients, active products and sellers (admin only)."
)
def dashboard(
    db: SupabaseClient = Depends(get_db),
    admin: Vendor = Depends(require_admin),
):
    metrics = get_dashboard_metrics(db)
    return DashboardResponse(
        metrics={
            name: MetricResponse(value=result.value, error=result.error)
            for name, result in metrics.items()
        }
    )
