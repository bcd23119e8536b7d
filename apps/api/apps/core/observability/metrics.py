"""
Prometheus metrics registry.
"""

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = Counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Family Access Metrics
        # ===================================================================
        self.family_access_denied_total = Counter(
            'family_access_denied_total',
            'Child-scoped requests refused by the family access guard',
            ['reason']  # no_relationship, read_only
        )

        self.family_unknown_role_total = Counter(
            'family_unknown_role_total',
            'Membership rows carrying a role outside owner/parent/read_only'
        )

        self.default_family_bootstrap_total = Counter(
            'default_family_bootstrap_total',
            'Default family bootstrap outcomes',
            ['outcome']  # existing, created, recovered
        )

        self.family_invites_total = Counter(
            'family_invites_total',
            'Family invite lifecycle events',
            ['result']  # created, accepted, revoked, rejected
        )

        # ===================================================================
        # Audit Metrics
        # ===================================================================
        self.audit_events_created_total = Counter(
            'audit_events_created_total',
            'Audit events written for visits and illnesses',
            ['entity_type', 'action']
        )

        self.audit_noop_updates_total = Counter(
            'audit_noop_updates_total',
            'Updates that changed no tracked field (no event written)',
            ['entity_type']
        )

        self.audit_history_duration_seconds = Histogram(
            'audit_history_duration_seconds',
            'History reconstruction duration',
            ['entity_type'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5]
        )

        # ===================================================================
        # Instance Administration Metrics
        # ===================================================================
        self.instance_admin_actions_total = Counter(
            'instance_admin_actions_total',
            'Instance administration actions',
            ['action']
        )

        self.registrations_total = Counter(
            'registrations_total',
            'Account registration attempts',
            ['result']  # created, first_user, disabled
        )


# Global metrics instance
metrics = MetricsRegistry()
