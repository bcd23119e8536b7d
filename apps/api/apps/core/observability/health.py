"""
Health check endpoints.

Provides /healthz and /readyz endpoints for monitoring.
"""
import logging
from django.http import JsonResponse
from django.views import View
from django.db import DatabaseError, connection
from django.db.migrations.executor import MigrationExecutor
from django.conf import settings

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Liveness endpoint. Returns 200 while the process is serving;
    dependencies are not checked.
    """

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness endpoint.

    Ready means the database answers and carries every migration this
    build ships; a pending migration would leave membership or audit
    tables in a shape the code does not expect.
    """

    def get(self, request):
        checks = {
            'database': self._check_database(),
        }
        checks['migrations'] = checks['database'] and self._check_migrations()

        all_healthy = all(checks.values())

        response_data = {
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
        }

        return JsonResponse(response_data, status=200 if all_healthy else 503)

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except DatabaseError as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_migrations(self):
        executor = MigrationExecutor(connection)
        pending = executor.migration_plan(executor.loader.graph.leaf_nodes())
        if pending:
            logger.warning(
                'Unapplied migrations detected',
                extra={
                    'event': 'health_check_failed',
                    'check': 'migrations',
                    'pending_count': len(pending),
                }
            )
        return not pending
