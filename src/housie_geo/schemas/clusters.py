"""Cluster optimization schemas."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel

from ..models.domain import OptimizationResult


class RouteSlotModel(BaseModel):
    unit: str
    start: str
    end: str


class OptimizationResponse(BaseModel):
    success: bool
    summary: str
    route: List[RouteSlotModel]
    preferred_block_id: str
    confidence: Literal["high", "medium", "low"]
    preference_ratio: float
    overflows_block: bool

    @classmethod
    def from_domain(cls, result: OptimizationResult) -> "OptimizationResponse":
        return cls.model_validate(result.to_record())
