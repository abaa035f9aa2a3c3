# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the mail dispatcher.

Metrics exposed (``mail_dispatch_`` prefix):
    - ``mail_dispatch_sent_total``: Messages handed to an SMTP server, per connection mode.
    - ``mail_dispatch_errors_total``: Failed sends, per connection mode.
    - ``mail_dispatch_mocked_total``: Messages logged by the mock delivery path.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class MailMetrics:
    """Prometheus counters for send outcomes.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        sent: Counter of successful live sends.
        errors: Counter of failed live sends.
        mocked: Counter of messages delivered through the mock path.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. A private one is
                created when omitted, so several services can coexist.
        """
        self.registry = registry or CollectorRegistry()
        self.sent = Counter(
            "mail_dispatch_sent_total",
            "Total sent emails",
            ["connection"],
            registry=self.registry,
        )
        self.errors = Counter(
            "mail_dispatch_errors_total",
            "Total send errors",
            ["connection"],
            registry=self.registry,
        )
        self.mocked = Counter(
            "mail_dispatch_mocked_total",
            "Total emails logged by the mock transport",
            registry=self.registry,
        )

    def inc_sent(self, connection: str) -> None:
        self.sent.labels(connection=connection).inc()

    def inc_error(self, connection: str) -> None:
        self.errors.labels(connection=connection).inc()

    def inc_mocked(self) -> None:
        self.mocked.inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
