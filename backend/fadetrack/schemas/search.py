"""
Fadetrack Backend: AI Search & ChatKit Schemas
==============================================
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Body of POST /api/aiSearch."""
    query: str = Field(min_length=1, max_length=2000)
    user_email: Optional[str] = None


class SearchResult(BaseModel):
    text: str


class SessionRequest(BaseModel):
    user_email: Optional[str] = None


class UsageSnapshot(BaseModel):
    """Counters for one identity, as returned to the browser."""
    user_email: str
    total_sessions: int = 0
    daily_sessions: int = 0
    monthly_sessions: int = 0
    last_session_at: Optional[dt.datetime] = None
    daily_limit: int
    monthly_limit: int
    daily_remaining: int
    monthly_remaining: int
    message: Optional[str] = None


class SessionResponse(BaseModel):
    client_secret: str
    usage: UsageSnapshot


class UsageTotals(BaseModel):
    model_config = {"populate_by_name": True}

    total_users: int = Field(alias="totalUsers")
    total_sessions: int = Field(alias="totalSessions")
    total_daily_sessions: int = Field(alias="totalDailySessions")
    total_monthly_sessions: int = Field(alias="totalMonthlySessions")


class UsageReport(BaseModel):
    totals: UsageTotals
    users: List[UsageSnapshot]


class StatusResponse(BaseModel):
    ok: bool = True
