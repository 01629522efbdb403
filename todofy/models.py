"""
Pydantic models for the model catalog, usage ledger, generation responses
and service health.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ModelFamily(str, Enum):
    UNSPECIFIED = "unspecified"
    GEMINI = "gemini"


class Model(str, Enum):
    UNSPECIFIED = "unspecified"
    GEMINI_2_5_PRO = "gemini_2_5_pro"
    GEMINI_2_5_FLASH = "gemini_2_5_flash"
    GEMINI_2_5_FLASH_LITE = "gemini_2_5_flash_lite"
    GEMINI_3_FLASH_PREVIEW = "gemini_3_flash_preview"
    GEMINI_2_0_FLASH = "gemini_2_0_flash"
    GEMINI_2_0_FLASH_LITE = "gemini_2_0_flash_lite"


class HealthStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    SERVING = "SERVING"
    NOT_SERVING = "NOT_SERVING"
    SERVICE_UNKNOWN = "SERVICE_UNKNOWN"


# ---------------------------------------------------------------------------
# Catalog and usage ledger
# ---------------------------------------------------------------------------


class ModelDescriptor(BaseModel):
    """
    A model the summarizer may call: abstract id, provider-side name and the
    largest input (in tokens) the provider accepts for it.
    """

    id: Model
    provider_name: str
    max_input_tokens: int = Field(gt=0)
    family: ModelFamily = ModelFamily.GEMINI

    model_config = ConfigDict(frozen=True)


class UsageRecord(BaseModel):
    """One accepted generation and the tokens it consumed."""

    timestamp: datetime
    cost: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class LimitViolation(BaseModel):
    """Window total as seen under the tracker lock when a request was refused."""

    current_usage: int
    requested: int
    limit: int
    window: timedelta

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return (
            f"token limit exceeded: {self.current_usage} used + {self.requested} requested "
            f"> {self.limit} per {self.window}"
        )


# ---------------------------------------------------------------------------
# Generation responses
# ---------------------------------------------------------------------------


class GenerationPart(BaseModel):
    text: str = ""


class GenerationContent(BaseModel):
    parts: List[GenerationPart] = Field(default_factory=list)
    role: Optional[str] = None


class GenerationCandidate(BaseModel):
    content: Optional[GenerationContent] = None
    finish_reason: Optional[str] = None


class GenerationResponse(BaseModel):
    """
    Provider-neutral shape of a generate call.

    usage_total is the provider's token count for the whole exchange
    (input + output) when it reports one.
    """

    candidates: List[GenerationCandidate] = Field(default_factory=list)
    usage_total: Optional[int] = None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


class SummaryRequest(BaseModel):
    family: ModelFamily
    prompt: str
    text: str
    model: Model = Model.UNSPECIFIED
    max_tokens: int = 0

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=False,
    )


class SummaryResult(BaseModel):
    summary: str
    model: Model


class TaskRecommendation(BaseModel):
    """One entry of the top-tasks answer."""

    rank: int = Field(ge=1)
    title: str
    reason: str = ""


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthCheckResponse(BaseModel):
    status: HealthStatus = HealthStatus.UNKNOWN


class HealthOutcome(BaseModel):
    """Result of polling one service until it served or the deadline passed."""

    service: str
    healthy: bool
    error: Optional[str] = None
    attempts: int = 0


__all__ = [
    "ModelFamily",
    "Model",
    "HealthStatus",
    "ModelDescriptor",
    "UsageRecord",
    "LimitViolation",
    "GenerationPart",
    "GenerationContent",
    "GenerationCandidate",
    "GenerationResponse",
    "SummaryRequest",
    "SummaryResult",
    "TaskRecommendation",
    "HealthCheckResponse",
    "HealthOutcome",
]
