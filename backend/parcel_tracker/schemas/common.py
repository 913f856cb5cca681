"""
Shared Pydantic schemas
"""

from datetime import datetime
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    db_connected: bool
    redis_connected: bool
    executor_running: bool
    timestamp: datetime
