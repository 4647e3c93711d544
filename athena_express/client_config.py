"""Runtime configuration for an AthenaExpress client."""

from dataclasses import dataclass, field
from typing import Mapping

from athena_express.config import Settings
from athena_express.exceptions import ConfigurationError
from athena_express.retry.backoff import (
    DelayValue,
    ExponentialDelay,
    RetryPolicy,
    as_delay_strategy,
)


@dataclass
class QueryConfig:
    """
    Per-client query behaviour.

    ``poll_interval`` and ``transient_retry_delay`` accept seconds, a
    function of the attempt number, or a DelayStrategy. Both retry loops are
    unbounded unless ``max_polls`` / ``max_transient_retries`` are set.
    """

    database: str = "default"
    workgroup: str | None = "primary"
    catalog: str | None = None
    output_location: str | None = None
    encryption: Mapping[str, str] | None = None

    format_json: bool = True
    ignore_empty: bool = True
    get_stats: bool = False
    skip_results: bool = False
    wait_for_results: bool = True
    page_size: int | None = None
    use_utc_dates: bool = False

    poll_interval: DelayValue = 0.2
    transient_retry_delay: DelayValue = 2.0
    max_polls: int | None = None
    max_transient_retries: int | None = None
    cancelled_is_failure: bool = False

    poll_policy: RetryPolicy = field(init=False, repr=False)
    transient_policy: RetryPolicy = field(init=False, repr=False)

    def __post_init__(self):
        """Validate configuration."""
        if not isinstance(self.database, str) or not self.database:
            raise ConfigurationError("database must be a non-empty string")
        if self.output_location is not None and not self.output_location.startswith("s3://"):
            raise ConfigurationError(
                "output_location must be an s3:// URI", output_location=self.output_location
            )
        if self.page_size is not None and (
            isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 1
        ):
            raise ConfigurationError("page_size must be a positive integer")

        try:
            # the first call is not a retry
            transient_attempts = (
                None if self.max_transient_retries is None else self.max_transient_retries + 1
            )
            self.poll_policy = RetryPolicy(as_delay_strategy(self.poll_interval), self.max_polls)
            self.transient_policy = RetryPolicy(
                as_delay_strategy(self.transient_retry_delay), transient_attempts
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid retry configuration: {e}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueryConfig":
        """Build the runtime configuration from loaded settings."""
        poll_interval: DelayValue = settings.poll_interval_seconds
        if settings.poll_backoff_factor > 1.0:
            poll_interval = ExponentialDelay(
                settings.poll_interval_seconds, factor=settings.poll_backoff_factor
            )

        return cls(
            database=settings.athena_database,
            workgroup=settings.athena_workgroup,
            catalog=settings.athena_catalog,
            output_location=settings.athena_output_location,
            encryption=settings.encryption,
            format_json=settings.format_json,
            ignore_empty=settings.ignore_empty,
            get_stats=settings.get_stats,
            skip_results=settings.skip_results,
            wait_for_results=settings.wait_for_results,
            page_size=settings.page_size,
            use_utc_dates=settings.use_utc_dates,
            poll_interval=poll_interval,
            transient_retry_delay=settings.transient_retry_delay_seconds,
            max_polls=settings.max_polls,
            max_transient_retries=settings.max_transient_retries,
            cancelled_is_failure=settings.cancelled_is_failure,
        )
