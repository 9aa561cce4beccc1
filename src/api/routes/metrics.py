"""
Metrics endpoints for Prometheus scraping and quick inspection
"""
from fastapi import APIRouter
from fastapi.responses import Response, JSONResponse
from src.observability.metrics import get_metrics_collector

router = APIRouter()

LEDGER_PREFIX = "ledger_"


@router.get("/metrics")
async def metrics_endpoint():
    """Ledger, price tick, endpoint and error counters in Prometheus text format"""
    return Response(
        content=get_metrics_collector().get_prometheus_format(),
        media_type="text/plain; version=0.0.4"
    )


@router.get("/metrics/json")
async def metrics_json_endpoint():
    """
    Metrics in JSON with average latency and success rate per metric, plus a
    summary of all ledger operations (trades, reviews, subscriptions, sweeps)
    """
    formatted_metrics = {}
    for metric_name, data in get_metrics_collector().get_metrics().items():
        count = data["count"]
        formatted_metrics[metric_name] = {
            "count": count,
            "total_latency_ms": data["total_latency_ms"],
            "average_latency_ms": round(data["total_latency_ms"] / count, 2) if count > 0 else 0,
            "errors": data["errors"],
            "success_rate": round((count - data["errors"]) / count * 100, 2) if count > 0 else 100.0,
            "last_updated": data["last_updated"]
        }

    ledger = [m for name, m in formatted_metrics.items() if name.startswith(LEDGER_PREFIX)]
    ledger_count = sum(m["count"] for m in ledger)
    ledger_errors = sum(m["errors"] for m in ledger)

    return JSONResponse(content={
        "metrics": formatted_metrics,
        "summary": {
            "total_metrics": len(formatted_metrics),
            "ledger_operations": ledger_count,
            "ledger_errors": ledger_errors,
            "ledger_success_rate": (
                round((ledger_count - ledger_errors) / ledger_count * 100, 2) if ledger_count > 0 else 100.0
            )
        }
    })
