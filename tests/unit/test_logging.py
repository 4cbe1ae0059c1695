"""Unit tests for correlation-aware structured logging."""

import logging

import pytest

from bluewater.utils.logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_payment_operation,
    log_webhook_event,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def clean_correlation() -> None:
    clear_correlation_id()


class TestCorrelationId:
    def test_generates_when_absent(self) -> None:
        cid = set_correlation_id()

        assert cid
        assert get_correlation_id() == cid

    def test_keeps_incoming_id(self) -> None:
        assert set_correlation_id("req-123") == "req-123"

    def test_formatter_prefixes_id(self) -> None:
        set_correlation_id("req-abc")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
        CorrelationIdFilter().filter(record)

        assert StructuredFormatter("%(message)s").format(record) == "[req-abc] hello"

    def test_formatter_without_context(self) -> None:
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

        assert StructuredFormatter("%(message)s").format(record).startswith("[no-correlation-id]")


class TestStructuredHelpers:
    def test_payment_operation_info(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("test.payments")
        with caplog.at_level(logging.INFO, logger="test.payments"):
            log_payment_operation(
                logger, "reserve_rental", booking_id=12, status="rented", rental_id=3
            )

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert "booking_id=12" in record.getMessage()
        assert "rental_id=3" in record.getMessage()

    def test_payment_operation_error(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("test.payments")
        with caplog.at_level(logging.INFO, logger="test.payments"):
            log_payment_operation(logger, "release_rental", booking_id=12, error="boom")

        assert caplog.records[-1].levelno == logging.ERROR

    @pytest.mark.parametrize(
        ("result", "level"),
        [("success", logging.INFO), ("duplicate", logging.WARNING), ("anomaly", logging.WARNING)],
    )
    def test_webhook_event_levels(
        self, caplog: pytest.LogCaptureFixture, result: str, level: int
    ) -> None:
        logger = logging.getLogger("test.webhooks")
        with caplog.at_level(logging.INFO, logger="test.webhooks"):
            log_webhook_event(logger, "payment_intent.succeeded", "evt_1", result=result)

        assert caplog.records[-1].levelno == level
        assert f"result={result}" in caplog.records[-1].getMessage()
