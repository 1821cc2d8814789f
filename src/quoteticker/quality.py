"""Sanity checks for samples returned by a quote source."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from quoteticker.models.sample import Sample


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def validate_samples(samples: list[Sample]) -> ValidationResult:
    """Run all quality checks on a sample series.

    An empty series passes: "nothing traded yet" is not bad data.

    Checks:
        1. No NaN/Inf closes
        2. Price sanity (strictly positive)
        3. Timestamps timezone-aware
        4. Timestamp ordering (strictly ascending)
    """
    result = ValidationResult()
    if not samples:
        return result

    # 1. No NaN/Inf
    bad = sum(1 for s in samples if math.isnan(s.close) or math.isinf(s.close))
    if bad:
        result.checks.append(ValidationCheck("no_nulls", False, f"{bad} NaN/Inf closes"))
        return result
    result.checks.append(ValidationCheck("no_nulls", True))

    # 2. Price sanity
    non_positive = sum(1 for s in samples if s.close <= 0)
    if non_positive:
        result.checks.append(
            ValidationCheck("price_sanity", False, f"{non_positive} samples with close <= 0")
        )
    else:
        result.checks.append(ValidationCheck("price_sanity", True))

    # 3. Aware timestamps
    naive = sum(1 for s in samples if s.timestamp.tzinfo is None)
    if naive:
        result.checks.append(
            ValidationCheck("timestamp_tz", False, f"{naive} naive timestamps")
        )
    else:
        result.checks.append(ValidationCheck("timestamp_tz", True))
        # 4. Ordering (only comparable once all are aware)
        out_of_order = sum(
            1 for i in range(1, len(samples))
            if samples[i].timestamp <= samples[i - 1].timestamp
        )
        if out_of_order:
            result.checks.append(
                ValidationCheck("timestamp_order", False, f"{out_of_order} out of order")
            )
        else:
            result.checks.append(ValidationCheck("timestamp_order", True))

    return result
