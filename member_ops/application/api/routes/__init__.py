from member_ops.application.api.routes.monitoring import router as monitoring_router

__all__ = ["monitoring_router"]
