"""Continuous, debounced validation of the pattern builder state."""

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from . import guidance
from .grouper import GroupingEngine
from .models import (
    EngineConfig,
    FilenameToken,
    PatternConfiguration,
    RoleRule,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    ValidationWarning,
    ValidationWarningType,
)
from .pattern_generator import PatternGenerator
from .rule_engine import RuleEngine

logger = logging.getLogger(__name__)

ValidationSubscriber = Callable[[ValidationResult], None]


class ConfigurationBlockedError(RuntimeError):
    """Raised when a configuration is requested while validation blocks it."""


class DebounceScheduler(Protocol):
    """Runs a callback once after a quiet period, restarting on every schedule."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Replace any pending callback and start the quiet period again."""
        ...

    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        ...

    def shutdown(self) -> None:
        """Release resources; no callback runs afterwards."""
        ...


class TimerScheduler:
    """Debounce scheduler backed by a restartable ``threading.Timer``.

    Callbacks run on the timer thread.
    """

    def __init__(self) -> None:
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()
        self._closed = False

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(delay, callback)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def shutdown(self) -> None:
        self.cancel()
        with self._lock:
            self._closed = True


class ManualScheduler:
    """Debounce scheduler that only runs when ``fire()`` is called.

    Suits event loops that poll for due work, and tests.
    """

    def __init__(self) -> None:
        self._pending: Callable[[], None] | None = None
        self.last_delay: float | None = None
        self.schedule_count = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self._pending = callback
        self.last_delay = delay
        self.schedule_count += 1

    def cancel(self) -> None:
        self._pending = None

    def shutdown(self) -> None:
        self._pending = None

    def fire(self) -> bool:
        """Run the pending callback. Returns whether there was one."""
        callback, self._pending = self._pending, None
        if callback is None:
            return False
        callback()
        return True


class ValidationModel:
    """Holds the builder state and keeps its validation result current.

    Every state change schedules a revalidation after a short quiet period;
    bursts of changes collapse into one run that sees the latest state. A
    result computed for an older state is discarded. While a revalidation is
    pending the configuration counts as blocked, so success is never reported
    for a state that has not been validated.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        scheduler: DebounceScheduler | None = None,
        pattern_generator: PatternGenerator | None = None,
        rule_engine: RuleEngine | None = None,
        grouping_engine: GroupingEngine | None = None,
    ):
        """Initialize the model; collaborators default to fresh instances."""
        self.config = config or EngineConfig()
        self.pattern_generator = pattern_generator or PatternGenerator(self.config)
        self.rule_engine = rule_engine or RuleEngine()
        self.grouping_engine = grouping_engine or GroupingEngine(self.rule_engine)
        self._scheduler = scheduler or TimerScheduler()

        self._lock = threading.RLock()
        self._configuration: PatternConfiguration | None = None
        self._sample_filenames: tuple[str, ...] = ()
        self._result: ValidationResult | None = None
        self._state_version = 0
        self._validated_version = -1
        self._subscribers: list[ValidationSubscriber] = []

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    @property
    def configuration(self) -> PatternConfiguration | None:
        with self._lock:
            return self._configuration

    @property
    def sample_filenames(self) -> tuple[str, ...]:
        with self._lock:
            return self._sample_filenames

    def update_configuration(self, configuration: PatternConfiguration | None) -> None:
        """Replace the configuration and schedule a revalidation."""
        with self._lock:
            self._configuration = configuration
            self._state_version += 1
        self.request_validation_refresh()

    def update_sample_filenames(self, filenames: Iterable[str]) -> None:
        """Replace the sample filenames and schedule a revalidation."""
        with self._lock:
            self._sample_filenames = tuple(filenames)
            self._state_version += 1
        self.request_validation_refresh()

    def update_selection(
        self,
        tokens: Sequence[FilenameToken],
        group_id_token: FilenameToken | None,
        rules: Iterable[RoleRule],
    ) -> PatternConfiguration:
        """Generate a configuration from a token selection and rules, then store it."""
        configuration = self.pattern_generator.build_configuration(tokens, group_id_token, rules)
        self.update_configuration(configuration)
        return configuration

    def update_advanced_patterns(
        self,
        group_pattern: str,
        front_pattern: str = "",
        rear_pattern: str = "",
        overview_pattern: str = "",
        rules: Iterable[RoleRule] = (),
    ) -> PatternConfiguration:
        """Store hand-edited patterns, then schedule a revalidation."""
        configuration = self.pattern_generator.build_advanced_configuration(
            group_pattern, front_pattern, rear_pattern, overview_pattern, rules
        )
        self.update_configuration(configuration)
        return configuration

    def notify_change(self, reason: str = "") -> None:
        """Report a change that affects validation without new state, like a mode switch."""
        logger.debug(f"Validation trigger: {reason or 'unspecified change'}")
        with self._lock:
            self._state_version += 1
        self.request_validation_refresh()

    # ------------------------------------------------------------------
    # Running validation
    # ------------------------------------------------------------------

    def request_validation_refresh(self) -> None:
        """Restart the debounce timer."""
        self._scheduler.schedule(self.config.debounce_seconds, self._run_scheduled_validation)

    def perform_immediate_validation(self) -> ValidationResult:
        """Cancel any pending run and validate the current state now."""
        self._scheduler.cancel()
        return self._validate_and_publish()

    def _run_scheduled_validation(self) -> None:
        self._validate_and_publish()

    def _validate_and_publish(self) -> ValidationResult:
        with self._lock:
            version = self._state_version
            configuration = self._configuration
            samples = self._sample_filenames

        result = self.validate_state(configuration, samples)

        with self._lock:
            if version != self._state_version:
                logger.debug("Discarding validation result for outdated state")
                return result
            self._result = result
            self._validated_version = version
            subscribers = list(self._subscribers)

        if result.has_errors:
            logger.info(f"Validation blocked: {guidance.describe_blocking_reason(result.errors)}")
        else:
            logger.debug(f"Validation passed with {len(result.warnings)} warnings")

        for subscriber in subscribers:
            try:
                subscriber(result)
            except Exception:
                logger.exception("Validation subscriber failed")
        return result

    def validate_state(
        self, configuration: PatternConfiguration | None, sample_filenames: Sequence[str]
    ) -> ValidationResult:
        """
        Validate a configuration against sample filenames.

        Args:
            configuration: Configuration to check
            sample_filenames: Filenames the configuration should handle

        Returns:
            Combined structural, rule and sample findings
        """
        if configuration is None:
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.NO_GROUP_ID_SELECTED, "No pattern configuration available"
                )
            )

        try:
            result = self.pattern_generator.validate_patterns(configuration)
            result = result.merge(self.rule_engine.validate_rules(configuration.role_rules))
            return result.merge(self._validate_samples(configuration, sample_filenames))
        except Exception as e:
            logger.exception("Validation failed unexpectedly")
            return ValidationResult.failure(
                ValidationError.of(
                    ValidationErrorType.INVALID_RULE_CONFIGURATION, f"Validation failed: {e}"
                )
            )

    def _validate_samples(
        self, configuration: PatternConfiguration, sample_filenames: Sequence[str]
    ) -> ValidationResult:
        if not sample_filenames:
            return ValidationResult.of(
                [], [ValidationWarning.of(ValidationWarningType.NO_SAMPLE_FILES)]
            )
        # Structural problems are already reported by the pattern checks.
        if self.grouping_engine.validate_group_pattern(configuration.group_pattern).has_errors:
            return ValidationResult.success()

        grouping = self.grouping_engine.group_and_assign_roles(
            sample_filenames, configuration.group_pattern, configuration.as_role_rules()
        )
        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []

        if grouping.total_files and grouping.matched_files == 0:
            errors.append(ValidationError.of(ValidationErrorType.NO_FILES_MATCHED))
        elif grouping.match_rate < self.config.low_match_rate_threshold:
            warnings.append(
                ValidationWarning.of(
                    ValidationWarningType.LOW_MATCH_RATE,
                    f"Only {grouping.matched_files} of {grouping.total_files} sample files "
                    f"match the group pattern",
                )
            )
        elif grouping.unmatched_files:
            warnings.append(
                ValidationWarning.of(
                    ValidationWarningType.UNMATCHED_FILES,
                    f"{grouping.unmatched_count} sample files don't match the group pattern",
                    ", ".join(grouping.unmatched_files[:5]),
                )
            )

        if grouping.unclassified_files:
            warnings.append(
                ValidationWarning.of(
                    ValidationWarningType.UNMATCHED_FILES,
                    f"{len(grouping.unclassified_files)} files don't match any role pattern",
                    ", ".join(grouping.unclassified_files[:5]),
                )
            )

        incomplete = grouping.get_incomplete_groups()
        if incomplete:
            warnings.append(
                ValidationWarning.of(
                    ValidationWarningType.INCOMPLETE_GROUPS,
                    f"{len(incomplete)} groups are missing required roles",
                    ", ".join(incomplete[:5]),
                )
            )
        return ValidationResult.of(errors, warnings)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def validation_result(self) -> ValidationResult | None:
        """Latest published result, None before the first validation."""
        with self._lock:
            return self._result

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        result = self.validation_result
        return result.errors if result else ()

    @property
    def warnings(self) -> tuple[ValidationWarning, ...]:
        result = self.validation_result
        return result.warnings if result else ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_any_messages(self) -> bool:
        """Whether there is anything to show in the message area."""
        return self.has_errors or self.has_warnings

    @property
    def is_pending(self) -> bool:
        """Whether the state changed since the last published validation."""
        with self._lock:
            return self._validated_version != self._state_version

    @property
    def is_blocked(self) -> bool:
        """Whether the configuration must not be used right now."""
        with self._lock:
            if self._result is None or self.is_pending or self._result.has_errors:
                return True
            return self._configuration is None or not self._configuration.is_valid()

    def can_generate_patterns(self) -> bool:
        """Whether a configuration may be handed out; warnings do not block."""
        return not self.is_blocked

    def should_show_success_banner(self) -> bool:
        """Whether the state is validated, error-free, usable and without warnings."""
        with self._lock:
            return self.can_generate_patterns() and not self._result.has_warnings

    def should_hide_validation_display(self) -> bool:
        """Whether there is nothing at all to display."""
        with self._lock:
            return not self.is_pending and not self.has_any_messages

    @property
    def validation_summary(self) -> str:
        with self._lock:
            if self._result is None:
                return guidance.STATUS_INCOMPLETE
            if self.is_pending:
                return "Validating..."
            return guidance.summarize(self._result.errors, self._result.warnings)

    @property
    def blocking_reason(self) -> str:
        """Why the configuration is blocked, or a confirmation that it is not."""
        with self._lock:
            if self._result is None:
                return "Configuration incomplete"
            if self.is_pending:
                return "Validation pending"
            if self._result.has_errors:
                return guidance.describe_blocking_reason(self._result.errors)
            if self._configuration is None or not self._configuration.is_valid():
                return "Configuration incomplete"
            return "Configuration is valid"

    def get_most_critical_error(self) -> ValidationError | None:
        return guidance.get_most_critical_error(self.errors)

    def get_fix_recommendations(self) -> list[str]:
        """Fixes for all current errors, without repeats."""
        return guidance.collect_fix_recommendations(self.errors)

    def is_blocked_by(self, error_type: ValidationErrorType) -> bool:
        return any(error.type == error_type for error in self.errors)

    def generate_configuration(self) -> PatternConfiguration:
        """
        Hand out the current configuration for downstream use.

        Raises:
            ConfigurationBlockedError: If validation currently blocks the configuration
        """
        with self._lock:
            if not self.can_generate_patterns():
                raise ConfigurationBlockedError(self.blocking_reason)
            configuration = self._configuration
        structural = self.pattern_generator.validate_patterns(configuration)
        if structural.has_errors:
            raise ConfigurationBlockedError(
                guidance.describe_blocking_reason(structural.errors)
            )
        return configuration

    # ------------------------------------------------------------------
    # Subscriptions and lifecycle
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: ValidationSubscriber) -> Callable[[], None]:
        """
        Receive every newly published result.

        Returns:
            A callable that removes the subscription
        """
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def clear_validation_state(self) -> None:
        """Forget configuration, samples and results."""
        self._scheduler.cancel()
        with self._lock:
            self._configuration = None
            self._sample_filenames = ()
            self._result = None
            self._state_version += 1
            self._validated_version = -1

    def shutdown(self) -> None:
        """Stop the debounce timer and drop subscribers."""
        self._scheduler.shutdown()
        with self._lock:
            self._subscribers.clear()
        logger.debug("Validation model shut down")
