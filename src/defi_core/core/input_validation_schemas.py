from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, conint, constr


class OracleSettingsUpdate(BaseModel):
    """Admin update of oracle settings. Each field is independently optional."""

    min_sources: Optional[conint(ge=1, le=100)] = None
    confidence_threshold: Optional[conint(ge=0, le=100)] = None
    deviation_threshold: Optional[conint(ge=1, le=10_000)] = None


class PoolInitInput(BaseModel):
    pair: constr(min_length=1)
    fee_rate_bps: conint(ge=0, le=10_000)
    is_stable: bool = False
    amplification: conint(ge=0) = 0
    initial_a: conint(gt=0, lt=2**64)
    initial_b: conint(gt=0, lt=2**64)
