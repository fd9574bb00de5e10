import enum
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(word.capitalize() for word in rest)


def _date_part(value: Any) -> Any:
    """Accept API timestamps ("2025-07-15T00:00:00.000Z") for date fields"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
        return value[:10]
    return value


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# Enums
class Verdict(enum.Enum):
    proven = "proven"
    likely = "likely"
    possible = "possible"
    unlikely = "unlikely"
    disproven = "disproven"


class EvidenceStrength(enum.Enum):
    weak = "weak"
    moderate = "moderate"
    strong = "strong"


class WorkflowStage(enum.Enum):
    not_started = "not_started"
    observing = "observing"
    investigating = "investigating"
    synthesizing = "synthesizing"
    confirmed = "confirmed"


class ApiModel(BaseModel):
    """Records served by the data service use camelCase keys"""
    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True)


# Upstream records
class HcpSummary(ApiModel):
    id: int
    name: str
    specialty: str = ""
    hospital: str = ""
    territory: str = ""
    engagement_level: str = "medium"
    switch_risk_score: int = 0
    switch_risk_tier: str = "low"
    switch_risk_reasons: List[str] = Field(default_factory=list)


class Patient(ApiModel):
    id: Optional[int] = None
    patient_code: str
    cohort: str
    switched_date: Optional[date] = None
    switched_to_drug: Optional[str] = None
    observation_start: Optional[date] = None

    # Evidence context only, never read by the aggregator
    age: Optional[int] = None
    cancer_type: Optional[str] = None
    payer: Optional[str] = None
    prior_auth_status: Optional[str] = None
    copay_amount: Optional[int] = None
    fulfillment_lag_days: Optional[int] = None

    @field_validator("switched_date", "observation_start", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Any:
        return _date_part(value)

    @model_validator(mode="after")
    def check_switch_after_observation_start(self):
        if self.switched_date and self.observation_start and self.switched_date < self.observation_start:
            raise ValueError(
                f"Patient {self.patient_code}: switched_date {self.switched_date} "
                f"precedes observation start {self.observation_start}"
            )
        return self


class PrescriptionHistoryRecord(ApiModel):
    month: str
    product_name: str
    prescription_count: int = 0
    is_our_product: bool = True
    cohort: Optional[str] = None

    @field_validator("month")
    @classmethod
    def check_month_key(cls, value: str) -> str:
        if not MONTH_KEY_PATTERN.match(value):
            raise ValueError(f"month must be a YYYY-MM key, got {value!r}")
        return value


class ClinicalEvent(ApiModel):
    id: Optional[int] = None
    event_date: date
    event_title: str
    event_type: str
    event_description: Optional[str] = None
    impact: Optional[str] = None
    related_drug: Optional[str] = None

    @field_validator("event_date", mode="before")
    @classmethod
    def coerce_event_date(cls, value: Any) -> Any:
        return _date_part(value)


# Investigation
class Evidence(ApiModel):
    source: str
    finding: str
    supports_hypothesis: bool
    strength: EvidenceStrength = EvidenceStrength.moderate


class Hypothesis(ApiModel):
    id: str
    title: str
    description: str = ""
    causal_chain: List[str] = Field(default_factory=list)
    evidence: List[Evidence] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class HypothesisResult(ApiModel):
    hypothesis: Hypothesis
    final_confidence: float
    verdict: Verdict
    counts_as_proven: bool
    reasoning: str = ""

    @property
    def id(self) -> str:
        return self.hypothesis.id


class ConfirmationRecord(ApiModel):
    session_id: str
    hypothesis_ids: Tuple[str, ...]
    hypotheses: List[HypothesisResult]
    sme_notes: str = ""
    confirmed_at: datetime


class InvestigationResults(ApiModel):
    """Serialized workflow + ledger state as the data service exchanges it"""
    has_investigation: bool = False
    session_id: Optional[str] = None
    stage: WorkflowStage = WorkflowStage.not_started
    all_hypotheses: List[HypothesisResult] = Field(default_factory=list)
    proven_hypotheses: List[HypothesisResult] = Field(default_factory=list)
    ruled_out: List[HypothesisResult] = Field(default_factory=list)
    confirmed_hypotheses: List[HypothesisResult] = Field(default_factory=list)
    is_confirmed: bool = False
    sme_notes: str = ""


# Aggregated outputs
class MonthPoint(ApiModel):
    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True, frozen=True)

    month: str
    counts: Dict[str, int]
    total: int


class AlignedEvent(ApiModel):
    event: ClinicalEvent
    month_index: int
    month: str


class CohortSwitchingSummary(ApiModel):
    cohort: str
    total_patients: int
    switched: int
    retained: int
    switch_rate: int
    first_switch: Optional[date] = None
    last_switch: Optional[date] = None
    switch_period: str = "N/A"
