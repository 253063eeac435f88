"""
Demo service routers:
- /level, /type - sink configuration
- /error, /{level} - trigger log calls
- /flush - manual harvest
- /metrics - Prometheus metrics
"""
from .demo import router as demo_router
from .metrics import router as metrics_router

__all__ = ["demo_router", "metrics_router"]
