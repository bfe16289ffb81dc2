"""Concurrent medication safety assessment.

Runs the four checkers in parallel on a shared thread pool and joins on all
of them. A checker that raises or exceeds its timeout is recorded as a
degraded check; its findings are treated as unknown, never as "no risk".

Guideline lookup runs on the same pool under the same deadline. It is
advisory, so a failed lookup is reported as unavailable guidance and does
not degrade the verdict.
"""

import concurrent.futures
import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable

from common.clinical_safety.errors import SafetyCheckUnavailable
from common.clinical_safety.models import (
    AllergyCheckResult,
    ContraindicationCheckResult,
    DoseValidationResult,
    GuidelineResult,
    InteractionCheckResult,
    Medication,
    PatientContext,
    RiskVerdict,
)
from common.clinical_safety.reference import BaseReferenceStore

from .checkers import (
    AllergyChecker,
    ContraindicationChecker,
    DoseValidator,
    GuidelineAdvisor,
    InteractionChecker,
)
from .config import config
from .risk import aggregate, apply_degraded_policy


@dataclass(frozen=True)
class SafetyAssessment:
    """Results of all four checks plus the aggregated verdict."""
    interactions: InteractionCheckResult
    allergies: AllergyCheckResult
    contraindications: ContraindicationCheckResult
    doses: DoseValidationResult
    verdict: RiskVerdict
    guidelines: GuidelineResult = field(default_factory=lambda: GuidelineResult(available=False))
    durations_ms: dict[str, float] = field(default_factory=dict)

    @property
    def degraded_checks(self) -> tuple[str, ...]:
        return self.verdict.degraded_checks

    def to_dict(self) -> dict[str, Any]:
        return {
            "interactions": self.interactions.to_dict(),
            "allergyAlerts": self.allergies.to_dict(),
            "contraindications": self.contraindications.to_dict(),
            "doseValidation": self.doses.to_dict(),
            "overallRisk": self.verdict.to_dict(),
            "degradedChecks": list(self.degraded_checks),
            "guidelines": self.guidelines.to_dict(),
        }


class MedicationSafetyChecker:
    """Fork/join runner for the interaction, allergy, contraindication and dose checks."""

    def __init__(
        self,
        interaction_checker: InteractionChecker,
        allergy_checker: AllergyChecker,
        contraindication_checker: ContraindicationChecker,
        dose_validator: DoseValidator,
        executor: Executor | None = None,
        timeout_seconds: float | None = None,
        degraded_policy: str | None = None,
        guideline_advisor: GuidelineAdvisor | None = None,
        logger: logging.Logger | None = None,
    ):
        self.checkers = (
            interaction_checker,
            allergy_checker,
            contraindication_checker,
            dose_validator,
        )
        self.guideline_advisor = guideline_advisor
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=config.SAFETY_CHECK_WORKERS, thread_name_prefix="safety-check"
        )
        self.timeout_seconds = timeout_seconds or config.SAFETY_CHECK_TIMEOUT_SECONDS
        self.degraded_policy = degraded_policy or config.DEGRADED_SAFETY_POLICY
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_reference_store(cls, reference_store: BaseReferenceStore, **kwargs) -> "MedicationSafetyChecker":
        logger = kwargs.get("logger")
        kwargs.setdefault("guideline_advisor", GuidelineAdvisor(reference_store, logger=logger))
        return cls(
            InteractionChecker(reference_store, logger=logger),
            AllergyChecker(reference_store, logger=logger),
            ContraindicationChecker(reference_store, logger=logger),
            DoseValidator(reference_store, logger=logger),
            **kwargs,
        )

    @property
    def interaction_checker(self) -> InteractionChecker:
        return self.checkers[0]

    @property
    def allergy_checker(self) -> AllergyChecker:
        return self.checkers[1]

    @property
    def contraindication_checker(self) -> ContraindicationChecker:
        return self.checkers[2]

    @property
    def dose_validator(self) -> DoseValidator:
        return self.checkers[3]

    def assess(self, medications: Iterable, patient: PatientContext) -> SafetyAssessment:
        """Run all checks concurrently and aggregate their findings."""
        medications = tuple(Medication.from_value(m) for m in medications)
        started = time.monotonic()
        deadline = started + self.timeout_seconds

        futures = {
            checker.name: self.executor.submit(self._timed, checker, medications, patient)
            for checker in self.checkers
        }
        guideline_future = (
            self.executor.submit(self.guideline_advisor.check, medications, patient)
            if self.guideline_advisor
            else None
        )

        results: dict[str, Any] = {}
        durations: dict[str, float] = {}
        degraded = []
        for name, future in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                results[name], durations[name] = future.result(timeout=remaining)
            except concurrent.futures.TimeoutError:
                future.cancel()
                degraded.append(name)
                self.logger.warning(
                    f"Safety check {name} timed out after {self.timeout_seconds}s"
                )
            except SafetyCheckUnavailable as e:
                degraded.append(name)
                self.logger.warning(f"Safety check {name} unavailable: {e}")
            except Exception as e:
                degraded.append(name)
                self.logger.error(f"Safety check {name} failed: {type(e).__name__}: {e}")

        interactions = results.get("interactions", InteractionCheckResult())
        allergies = results.get("allergies", AllergyCheckResult())
        contraindications = results.get("contraindications", ContraindicationCheckResult())
        doses = results.get("doses", DoseValidationResult())

        verdict = aggregate(
            interactions.interactions,
            allergies.alerts,
            contraindications.contraindications,
            doses.validations,
            degraded_checks=degraded,
        )
        verdict = apply_degraded_policy(verdict, self.degraded_policy)
        guidelines = self._collect_guidelines(guideline_future, deadline)

        self.logger.info(
            f"Safety assessment of {len(medications)} medications: "
            f"level={verdict.level.value} score={verdict.score} "
            f"blocks={verdict.blocks_administration} degraded={list(verdict.degraded_checks)} "
            f"({(time.monotonic() - started) * 1000:.0f} ms)"
        )

        return SafetyAssessment(
            interactions=interactions,
            allergies=allergies,
            contraindications=contraindications,
            doses=doses,
            verdict=verdict,
            guidelines=guidelines,
            durations_ms=durations,
        )

    def _collect_guidelines(self, future, deadline: float) -> GuidelineResult:
        if future is None:
            return GuidelineResult(available=False)
        try:
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except concurrent.futures.TimeoutError:
            future.cancel()
            self.logger.warning(f"Guideline lookup timed out after {self.timeout_seconds}s")
        except SafetyCheckUnavailable as e:
            self.logger.warning(f"Guideline lookup unavailable: {e}")
        except Exception as e:
            self.logger.error(f"Guideline lookup failed: {type(e).__name__}: {e}")
        return GuidelineResult(available=False)

    @staticmethod
    def _timed(checker, medications, patient):
        started = time.monotonic()
        result = checker.check(medications, patient)
        return result, (time.monotonic() - started) * 1000

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
