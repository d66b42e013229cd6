# src/branchguard/util/errors.py: Typed exceptions and exit codes.
# This module defines the exception hierarchy for the policy engine. Rule-local
# defects (a broken pattern or definition) are recovered by the rule set, while
# call-level failures propagate to the caller. Every class carries an exit code
# so the CLI can map failures to process exit statuses.


class BranchGuardError(Exception):
    """Base exception for the application."""
    exit_code = 1


class ConfigError(BranchGuardError):
    """Configuration-related errors."""
    exit_code = 2


class StoreError(BranchGuardError):
    """Rule, space or membership storage errors."""
    exit_code = 3


class NotFoundError(StoreError):
    """A requested space, repository or rule does not exist."""
    exit_code = 3


class PolicyViolationError(BranchGuardError):
    """A merge is blocked by at least one protection rule."""
    exit_code = 4


class RuleError(BranchGuardError):
    """A single rule could not be parsed or evaluated."""
    exit_code = 5


class PatternError(RuleError):
    """Malformed rule pattern payload."""


class DefinitionError(RuleError):
    """Malformed rule definition payload."""


class UnknownRuleTypeError(RuleError):
    """No definition is registered for the rule's type tag."""


class RegistryError(BranchGuardError):
    """Invalid definition registration."""
    exit_code = 6


class InvalidInputError(BranchGuardError):
    """A mandatory evaluation input is missing."""
    exit_code = 7


class EvaluationCancelledError(BranchGuardError):
    """The evaluation context was cancelled before a decision was reached."""
    exit_code = 8
