"""
Tests for cron expression parsing and the expression builder.

Tests cover:
- Field expansion (lists, ranges, steps, names)
- 5- and 6-field expressions
- Expressions that never fire
- Strict vs lenient building
- All-wildcard timing rejection
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from prnotify.core.errors import ConfigurationError, CronExpressionError
from prnotify.notifications.models import NotificationConfig, Timing
from prnotify.scheduling.cron import (
    CronExpressionBuilder,
    next_fire_time,
    parse_cron_expression,
    timing_to_cron_expression,
    validate_cron_expression,
)


class TestFieldExpansion:
    """Tests for the per-field values taken from croniter."""

    def test_wildcard(self):
        assert parse_cron_expression("0 * * * *").values["hour"] == frozenset(range(24))

    def test_list_and_range(self):
        assert parse_cron_expression("0 1-3,10 * * *").values["hour"] == frozenset({1, 2, 3, 10})

    def test_step(self):
        assert parse_cron_expression("*/15 * * * *").values["minute"] == frozenset({0, 15, 30, 45})

    def test_names(self):
        schedule = parse_cron_expression("0 9 * jan,dec MON-FRI")

        assert schedule.values["day_of_week"] == frozenset({1, 2, 3, 4, 5})
        assert schedule.values["month"] == frozenset({1, 12})

    def test_sunday_as_seven(self):
        assert parse_cron_expression("0 9 * * 7").values["day_of_week"] == frozenset({0})

    def test_seconds_field(self):
        assert parse_cron_expression("15,45 * * * * *").values["second"] == frozenset({15, 45})

    @pytest.mark.parametrize(
        "expression",
        [
            "60 * * * *",
            "* 24 * * *",
            "* * 32 * *",
            "* * * 13 *",
            "* * * * 8",
            "abc * * * *",
            "0 MON * * *",
            "60 * * * * *",
        ],
    )
    def test_invalid(self, expression):
        with pytest.raises(CronExpressionError, match="Invalid cron expression"):
            parse_cron_expression(expression)

    @pytest.mark.parametrize("expression", ["0 0 31 2 *", "0 0 30 2 *"])
    def test_never_fires(self, expression):
        """Valid fields that no calendar date satisfies are rejected."""
        with pytest.raises(CronExpressionError) as exc_info:
            parse_cron_expression(expression)

        assert exc_info.value.expression == expression


class TestParseCronExpression:
    """Tests for whole-expression validation."""

    def test_five_fields(self):
        schedule = parse_cron_expression("0 17 * * 1-5")

        assert schedule.has_seconds is False
        assert schedule.values["hour"] == frozenset({17})
        assert schedule.croniter_expression() == "0 17 * * 1-5"

    def test_six_fields_moves_seconds_last(self):
        schedule = parse_cron_expression("30 0 9 * * MON-FRI")

        assert schedule.has_seconds is True
        assert schedule.croniter_expression() == "0 9 * * MON-FRI 30"

    def test_normalizes_whitespace(self):
        assert validate_cron_expression("  0   9 * *  1-5 ") == "0 9 * * 1-5"

    @pytest.mark.parametrize("expression", ["", "* * * *", "* * * * * * *"])
    def test_wrong_field_count(self, expression):
        with pytest.raises(CronExpressionError, match="Expected 5 or 6 fields"):
            parse_cron_expression(expression)

    def test_error_carries_expression(self):
        with pytest.raises(CronExpressionError) as exc_info:
            parse_cron_expression("61 * * * *")

        assert exc_info.value.expression == "61 * * * *"
        assert exc_info.value.context.expression == "61 * * * *"

    def test_day_of_week_names(self):
        assert parse_cron_expression("0 9 * * 1-5").day_of_week_names() == "mon,tue,wed,thu,fri"
        assert parse_cron_expression("0 9 * * *").day_of_week_names() == "*"
        assert parse_cron_expression("0 9 * * 0,7").day_of_week_names() == "sun"


class TestNextFireTime:
    """croniter integration."""

    def test_weekday_evening(self):
        # 2025-03-07 is a Friday
        after = datetime(2025, 3, 7, 18, 0, tzinfo=UTC)

        result = next_fire_time("0 17 * * 1-5", "UTC", after=after)

        assert result == datetime(2025, 3, 10, 17, 0, tzinfo=UTC)

    def test_timezone(self):
        after = datetime(2025, 3, 7, 0, 0, tzinfo=UTC)

        result = next_fire_time("0 9 * * *", "Asia/Ho_Chi_Minh", after=after)

        assert result.astimezone(UTC) == datetime(2025, 3, 7, 2, 0, tzinfo=UTC)

    def test_seconds(self):
        after = datetime(2025, 3, 7, 9, 0, 0, tzinfo=UTC)

        result = next_fire_time("30 * * * * *", "UTC", after=after)

        assert result == datetime(2025, 3, 7, 9, 0, 30, tzinfo=UTC)


class TestTimingToCronExpression:
    """Tests for structured timing rendering."""

    def test_weekday_timing(self):
        timing = Timing(minute=0, hour=17, day_of_week="1-5")

        assert timing_to_cron_expression(timing) == "0 17 * * 1-5"

    def test_with_seconds(self):
        assert timing_to_cron_expression(Timing(second=0, minute="*/5")) == "0 */5 * * * *"

    @pytest.mark.parametrize("timing", [Timing(), Timing(second="*")])
    def test_all_wildcard_raises(self, timing):
        with pytest.raises(ConfigurationError, match="Invalid timing values provided"):
            timing_to_cron_expression(timing)


class TestCronExpressionBuilder:
    """Tests for strict and lenient building."""

    @pytest.fixture
    def log(self):
        return MagicMock()

    @pytest.fixture
    def builder(self, log):
        return CronExpressionBuilder(logger=log)

    def test_expression_wins_over_timing(self, builder):
        config = NotificationConfig(
            id=1, workflow_name="w", expression="0 11 * * MON", timing=Timing(minute=5)
        )

        assert builder.build_expression(config) == "0 11 * * MON"

    def test_timing(self, builder):
        config = NotificationConfig(id=1, workflow_name="w", timing=Timing(minute=0, hour=9))

        assert builder.build_expression(config) == "0 9 * * *"

    def test_missing_timing_strict(self, builder):
        config = NotificationConfig(id=5, workflow_name="w")

        with pytest.raises(ConfigurationError, match="No timing or expression provided") as exc_info:
            builder.build_expression(config, strict=True)

        assert exc_info.value.context.job_id == 5

    def test_missing_timing_lenient(self, builder, log):
        config = NotificationConfig(id=5, workflow_name="w")

        assert builder.build_expression(config, strict=False) == ""
        log.error.assert_called_once()
        assert log.error.call_args.args[0] == "notification_config_without_timing"

    def test_invalid_expression_strict(self, builder, log):
        config = NotificationConfig(id=4, workflow_name="w", expression="61 * * * *")

        with pytest.raises(CronExpressionError) as exc_info:
            builder.build_expression(config, strict=True)

        assert exc_info.value.context.job_id == 4
        assert log.error.call_args.args[0] == "cron_expression_invalid"

    def test_invalid_expression_lenient(self, builder):
        config = NotificationConfig(id=4, workflow_name="w", expression="61 * * * *")

        assert builder.build_expression(config, strict=False) == ""

    def test_invalid_timing_field_lenient(self, builder):
        config = NotificationConfig(id=4, workflow_name="w", timing=Timing(hour="25"))

        assert builder.build_expression(config, strict=False) == ""

    @pytest.mark.parametrize("strict", [True, False])
    def test_all_wildcard_raises_in_both_modes(self, builder, strict):
        config = NotificationConfig(id=9, workflow_name="w", timing=Timing())

        with pytest.raises(ConfigurationError) as exc_info:
            builder.build_expression(config, strict=strict)

        assert exc_info.value.context.job_id == 9

    def test_impossible_date_strict(self, builder, log):
        config = NotificationConfig(id=7, workflow_name="w", expression="0 0 31 2 *")

        with pytest.raises(CronExpressionError):
            builder.build_expression(config, strict=True)

        assert log.error.call_args.kwargs["expression"] == "0 0 31 2 *"
