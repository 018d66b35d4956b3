"""Flow overview feature module for the flow metrics page."""

from flow_app.features.flow_overview.context import FlowOverviewContext, build_flow_context

__all__ = [
    "FlowOverviewContext",
    "build_flow_context",
]
