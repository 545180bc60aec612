"""Validation of configuration values against the option catalog.

Every axis is validated the same way: a candidate value goes in, a
ValidationResult comes out. Results never print anything; callers decide
whether a rejection is fatal (command line) or re-prompted (interactive).
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from particlectl.core.errors import ConfigValidationError
from particlectl.models.catalog import Axis, OptionEntry, find_entry, get_catalog
from particlectl.models.config import normalize_architecture
from particlectl.models.profiles import SEPARATOR, ProfileSet


class Verdict(Enum):
    """Outcome of validating a value.

    Attributes:
        ACCEPTED: Value is valid as given.
        NORMALIZED: Value is valid after rewriting (alias, duplicates).
        UNLISTED: Value is not in the catalog but accepted anyway.
        REJECTED: Value is invalid.
    """

    ACCEPTED = "accepted"
    NORMALIZED = "normalized"
    UNLISTED = "unlisted"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of validating one value for one axis.

    Attributes:
        axis: Axis the value was checked against.
        verdict: Outcome of the check.
        original: Value as supplied.
        value: Value to store. Equal to ``original`` unless normalized.
        invalid: Offending tokens for a rejected value.
        options: Catalog the value was checked against.
    """

    axis: Axis
    verdict: Verdict
    original: str
    value: str
    invalid: tuple[str, ...] = ()
    options: tuple[OptionEntry, ...] = field(default=())

    @property
    def accepted(self) -> bool:
        """Check if the value may be used."""
        return self.verdict != Verdict.REJECTED

    @property
    def message(self) -> str:
        """One-line description of the outcome."""
        name = self.axis.value
        if self.verdict == Verdict.REJECTED:
            shown = ", ".join(repr(token) if not token else token for token in self.invalid)
            return f"Invalid {name}: {shown or repr(self.original)}"
        if self.verdict == Verdict.UNLISTED:
            return (
                f"{name.capitalize()} '{self.value}' is not in the common list "
                "but will be accepted"
            )
        if self.verdict == Verdict.NORMALIZED:
            return f"Converting {name} '{self.original}' to '{self.value}'"
        return f"{name.capitalize()} '{self.value}' is valid"

    def raise_for_verdict(self) -> "ValidationResult":
        """Return self, or raise if the value was rejected.

        Raises:
            ConfigValidationError: If the verdict is REJECTED.
        """
        if self.verdict == Verdict.REJECTED:
            raise ConfigValidationError(self)
        return self


def validate_option(
    axis: Axis,
    value: str,
    *,
    allow_empty: bool = False,
    allow_unlisted: bool = False,
) -> ValidationResult:
    """Validate a single value against the catalog of ``axis``.

    Args:
        axis: Axis whose catalog is used.
        value: Candidate value; matched case-sensitively.
        allow_empty: Accept the empty string.
        allow_unlisted: Accept values missing from the catalog as UNLISTED.

    Returns:
        ValidationResult describing the outcome.
    """
    catalog = get_catalog(axis)
    if not value:
        verdict = Verdict.ACCEPTED if allow_empty else Verdict.REJECTED
        return ValidationResult(axis, verdict, value, value, invalid=("",), options=catalog)

    if find_entry(axis, value) is not None:
        return ValidationResult(axis, Verdict.ACCEPTED, value, value, options=catalog)

    if allow_unlisted:
        return ValidationResult(axis, Verdict.UNLISTED, value, value, options=catalog)

    return ValidationResult(axis, Verdict.REJECTED, value, value, invalid=(value,), options=catalog)


def validate_architecture(
    value: str,
    *,
    allow_empty: bool = False,
    allow_unlisted: bool = True,
) -> ValidationResult:
    """Validate an architecture, resolving aliases first.

    Architectures outside the catalog are accepted with an UNLISTED
    verdict because mkosi supports more of them than are listed.
    """
    canonical = normalize_architecture(value)
    result = validate_option(
        Axis.ARCHITECTURE,
        canonical,
        allow_empty=allow_empty,
        allow_unlisted=allow_unlisted,
    )
    if canonical != value and result.verdict == Verdict.ACCEPTED:
        return ValidationResult(
            Axis.ARCHITECTURE,
            Verdict.NORMALIZED,
            value,
            canonical,
            options=result.options,
        )
    if canonical != value:
        return ValidationResult(
            Axis.ARCHITECTURE,
            result.verdict,
            value,
            canonical,
            invalid=result.invalid,
            options=result.options,
        )
    return result


def validate_distribution(value: str, *, allow_empty: bool = False) -> ValidationResult:
    """Validate a distribution. Only catalog keys are accepted."""
    return validate_option(Axis.DISTRIBUTION, value, allow_empty=allow_empty)


def validate_profiles(
    value: str | Iterable[str],
    *,
    allow_empty: bool = True,
) -> ValidationResult:
    """Validate a comma-separated profile list.

    Each token is checked on its own; a single invalid token rejects the
    whole list. Duplicate tokens are collapsed, which yields NORMALIZED.

    Args:
        value: Comma-joined string or iterable of profile names.
        allow_empty: Accept an empty list (no profile).
    """
    original = value if isinstance(value, str) else SEPARATOR.join(value)
    catalog = get_catalog(Axis.PROFILE)

    if not original:
        verdict = Verdict.ACCEPTED if allow_empty else Verdict.REJECTED
        return ValidationResult(Axis.PROFILE, verdict, original, original, options=catalog)

    tokens = original.split(SEPARATOR)
    invalid = tuple(token for token in tokens if find_entry(Axis.PROFILE, token) is None)
    if invalid:
        return ValidationResult(
            Axis.PROFILE,
            Verdict.REJECTED,
            original,
            original,
            invalid=invalid,
            options=catalog,
        )

    canonical = ProfileSet(tokens).joined()
    verdict = Verdict.ACCEPTED if canonical == original else Verdict.NORMALIZED
    return ValidationResult(Axis.PROFILE, verdict, original, canonical, options=catalog)


def validate(axis: Axis, value: str) -> ValidationResult:
    """Validate ``value`` with the default rules for ``axis``."""
    if axis == Axis.ARCHITECTURE:
        return validate_architecture(value)
    if axis == Axis.DISTRIBUTION:
        return validate_distribution(value)
    return validate_profiles(value)
