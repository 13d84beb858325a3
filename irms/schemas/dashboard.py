# irms/schemas/dashboard.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class Summary(BaseModel):
    total_incidents: int = 0
    open_incidents: int = 0
    critical_incidents: int = 0
    total_risks: int = 0
    open_risks: int = 0
    total_tasks: int = 0
    pending_tasks: int = 0


class HeatCell(BaseModel):
    likelihood: str
    impact: str
    count: int


class Charts(BaseModel):
    incidents_by_status: Dict[str, int]
    incidents_by_severity: Dict[str, int]
    # admin only
    incidents_by_department: Optional[Dict[str, int]] = None
    risks_by_status: Dict[str, int]
    risk_heatmap: List[HeatCell]
    tasks_by_status: Dict[str, int]


class RecentIncident(BaseModel):
    id: int
    title: str
    status: str
    severity: str
    created_at: datetime


class UpcomingTask(BaseModel):
    id: int
    title: str
    status: str
    due_date: datetime
    assigned_to_id: int


class RecentActivity(BaseModel):
    recent_incidents: List[RecentIncident]
    upcoming_tasks: List[UpcomingTask]


class DashboardOverview(BaseModel):
    scope: str  # "all" | "department" | "own"
    summary: Summary
    charts: Charts
    recent_activity: RecentActivity
