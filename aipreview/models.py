from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Fingerprint of one generation call. Only used to derive cache keys."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    raw_prompt: str = ""
    structured_inputs: Dict[str, Any] = Field(default_factory=dict)
    model_id: str = ""

    def fingerprint(self) -> str:
        h = hashlib.sha256()
        h.update((self.raw_prompt or "").encode("utf-8"))
        h.update(
            json.dumps(self.structured_inputs, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str).encode(
                "utf-8"
            )
        )
        return h.hexdigest()[:16]

    def cache_key(self, namespace: str) -> str:
        return f"{namespace}{self.fingerprint()}"


class ModelProfile(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str
    max_output_tokens: int
    temperature: float = 0.8
    top_p: float = 0.95


class Usage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_token_count: int = Field(0, alias="promptTokenCount")
    candidates_token_count: int = Field(0, alias="candidatesTokenCount")
    total_token_count: int = Field(0, alias="totalTokenCount")


class TechStack(BaseModel):
    model_config = ConfigDict(extra="allow")

    frontend: Optional[Any] = None
    backend: Optional[Any] = None
    database: Optional[Any] = None
    deployment: Optional[Any] = None
    other: Optional[List[str]] = None


class TimelinePhase(BaseModel):
    model_config = ConfigDict(extra="allow")

    phase: Optional[str] = None
    weeks: Optional[int] = None
    deliverables: Optional[List[str]] = None


class Timeline(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    total_weeks: Optional[int] = Field(None, alias="totalWeeks")
    phases: Optional[List[TimelinePhase]] = None


class BudgetItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: Optional[str] = None
    percentage: Optional[float] = None
    description: Optional[str] = None


class BudgetBreakdown(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: Optional[str] = None
    breakdown: Optional[List[BudgetItem]] = None


class AnalysisDocument(BaseModel):
    """Project analysis. Every field may be missing in model output."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    overview: Optional[str] = None
    features: Optional[List[str]] = None
    tech_stack: Optional[TechStack] = Field(None, alias="techStack")
    timeline: Optional[Timeline] = None
    budget_breakdown: Optional[BudgetBreakdown] = Field(None, alias="budgetBreakdown")
    risks: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerationResult(BaseModel):
    """Envelope returned by every service entry point."""

    model_config = ConfigDict(populate_by_name=True)

    result: Optional[Any] = None
    html_code: Optional[str] = Field(None, alias="htmlCode")
    from_cache: bool = Field(False, alias="fromCache")
    is_mock: bool = Field(False, alias="isMock")
    usage: Optional[Usage] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, exclude={"result", "html_code", "usage"})
        if self.result is not None:
            payload["result"] = self.result
        if self.html_code is not None:
            payload["htmlCode"] = self.html_code
        payload["usage"] = self.usage.model_dump(by_alias=True) if self.usage else None
        return payload
