"""KPI snapshot shown on the dashboard tab."""

from pydantic import BaseModel


class KPIOut(BaseModel):
    total_downtime_today: int
    total_downtime_minutes: int
    alerts_total: int
    alerts_open: int
    alerts_closed: int
    machines_down: int
    machines_running: int
    maintenance_total: int
    maintenance_completed: int
    maintenance_completed_percent: int
