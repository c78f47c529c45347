"""Tests for outcome aggregation."""

from hirepush.services.broadcast import (
    BroadcastSummary,
    DeliveryOutcome,
    DeliveryStatus,
    summarize,
)


def test_empty_outcomes():
    assert summarize([]) == BroadcastSummary(attempted=0, sent=0, removed=0, failed=0)


def test_counts_sent_and_failed():
    outcomes = [
        DeliveryOutcome("https://push.example.com/a", DeliveryStatus.SENT),
        DeliveryOutcome("https://push.example.com/b", DeliveryStatus.SENT),
        DeliveryOutcome("https://push.example.com/c", DeliveryStatus.FAILED),
    ]

    summary = summarize(outcomes)

    assert summary.attempted == 3
    assert summary.sent == 2
    assert summary.failed == 1
    assert summary.removed == 0


def test_removed_requires_successful_prune():
    outcomes = [
        DeliveryOutcome("https://push.example.com/a", DeliveryStatus.FAILED, remove=True),
        DeliveryOutcome("https://push.example.com/b", DeliveryStatus.FAILED, remove=True),
    ]

    summary = summarize(outcomes, pruned={"https://push.example.com/a"})

    assert summary.removed == 1


def test_pruned_endpoint_without_remove_flag_not_counted():
    outcomes = [DeliveryOutcome("https://push.example.com/a", DeliveryStatus.FAILED)]

    assert summarize(outcomes, pruned=["https://push.example.com/a"]).removed == 0


def test_attempted_override_and_partial():
    outcomes = [DeliveryOutcome("https://push.example.com/a", DeliveryStatus.SENT)]

    summary = summarize(outcomes, attempted=5, partial=True)

    assert summary.attempted == 5
    assert summary.sent == 1
    assert summary.partial is True
