"""Confidence-gated dispatch between the rule engine and a language model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from launchpad.core.llm_client import LLMClient
from launchpad.core.rule_engine import Diagnosis, RuleEngine
from launchpad.models.chat import ChatContext, ChatResponse, ResponseSource
from launchpad.models.events import LogEntry, LogType
from launchpad.models.project import ProjectAnalysis, ProjectKind

logger = logging.getLogger(__name__)

ERROR_CONFIDENCE = 0.5
PROVIDER_NAME = "Groq"


class PlanStep(BaseModel):
    name: str
    description: str
    required: bool


class SetupPlan(BaseModel):
    steps: list[PlanStep] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


@dataclass(slots=True)
class ErrorDiagnoses:
    has_errors: bool
    diagnoses: list[Diagnosis] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.diagnoses)

    @property
    def message(self) -> str:
        return "No errors detected" if not self.has_errors else f"{self.count} error(s) found"


@dataclass(slots=True)
class AIStatus:
    available: bool
    model: str
    provider: str
    instructions: str


class HybridAgent:
    """Answer chat turns from rules first and fall back to the language model.

    `chat` never raises: any fault becomes an apologetic response with
    source `error`.
    """

    def __init__(
        self,
        llm: LLMClient,
        *,
        rules: RuleEngine | None = None,
        confidence_threshold: float = 0.8,
    ) -> None:
        self._llm = llm
        self._rules = rules or RuleEngine()
        self._threshold = confidence_threshold
        self._initialized = False

    @property
    def ai_available(self) -> bool:
        return self._llm.available

    async def initialize(self) -> None:
        """Probe the backend once; repeated calls are no-ops."""
        if self._initialized:
            return
        available = await self._llm.check_availability()
        self._initialized = True
        if available:
            logger.info("Language model backend available (%s)", self._llm.model)
        else:
            logger.info("Language model not configured; using rule-based responses only")

    async def chat(self, text: str, context: ChatContext) -> ChatResponse:
        try:
            if not self._initialized:
                await self.initialize()

            match = self._rules.classify(text)
            rule_response = self._rules.respond(match.intent, text, context)
            if rule_response.confidence >= self._threshold:
                return rule_response.model_copy(update={"source": ResponseSource.RULES})

            if self._llm.available:
                llm_response = await self._llm.query(text, context)
                if llm_response is not None:
                    return llm_response.model_copy(update={"source": ResponseSource.LLM})

            return rule_response.model_copy(update={"source": ResponseSource.RULES})
        except Exception as exc:
            logger.exception("Chat turn failed")
            return ChatResponse(
                message=f"Sorry, I encountered an error: {exc}",
                actions=[],
                confidence=ERROR_CONFIDENCE,
                source=ResponseSource.ERROR,
            )

    def analyze_and_plan(self, analysis: ProjectAnalysis) -> SetupPlan:
        plan = SetupPlan()
        plan.steps.append(
            PlanStep(
                name="System Check",
                description="Verify Node.js, npm, and Docker",
                required=True,
            )
        )

        if analysis.has_env_example and not analysis.has_env:
            plan.steps.append(
                PlanStep(
                    name="Environment Setup",
                    description="Create .env file from .env.example",
                    required=True,
                )
            )
            plan.warnings.append("Remember to update .env with your actual values")

        if analysis.has_database and not analysis.has_compose:
            plan.steps.append(
                PlanStep(
                    name="Docker Setup",
                    description="Generate docker-compose.yml for database",
                    required=False,
                )
            )
            plan.recommendations.append("Consider using Docker for database management")

        plan.steps.append(
            PlanStep(
                name="Install Dependencies",
                description="Run npm install for all packages",
                required=True,
            )
        )

        if analysis.kind is ProjectKind.FULLSTACK:
            plan.steps.extend(
                [
                    PlanStep(
                        name="Start Database",
                        description="Start database containers",
                        required=analysis.has_database,
                    ),
                    PlanStep(name="Start Backend", description="Start backend server", required=True),
                    PlanStep(
                        name="Start Frontend",
                        description="Start frontend dev server",
                        required=True,
                    ),
                ]
            )
        else:
            plan.steps.append(
                PlanStep(
                    name="Start Server",
                    description=f"Start {analysis.kind.value} server",
                    required=True,
                )
            )
        return plan

    def diagnose_errors(self, logs: list[LogEntry]) -> ErrorDiagnoses:
        errors = [entry for entry in logs if entry.type is LogType.ERROR]
        if not errors:
            return ErrorDiagnoses(has_errors=False)
        return ErrorDiagnoses(
            has_errors=True,
            diagnoses=[self._rules.diagnose(entry.message) for entry in errors],
        )

    def ai_status(self) -> AIStatus:
        available = self._llm.available
        return AIStatus(
            available=available,
            model=self._llm.model,
            provider=PROVIDER_NAME,
            instructions=(
                "AI is active and ready"
                if available
                else "AI not configured - using rule-based responses"
            ),
        )

    async def update_api_key(self, api_key: str) -> AIStatus:
        """Swap the backend key and re-run the availability probe."""
        self._llm.api_key = api_key
        self._llm.available = False
        self._initialized = False
        await self.initialize()
        return self.ai_status()
