"""
URL patterns for the indexer operator API.

Endpoints:
- POST /api/v1/trigger/       - Run a site's submission now
- GET  /api/v1/status/        - Last execution record
- GET  /api/v1/history/       - Execution history
- GET  /api/v1/quota/         - Bing quota status
- POST /api/v1/quota/reset/   - Reset today's Bing quota
- GET  /api/v1/config/        - Masked configuration summary
- GET  /api/v1/health/        - Health check
"""

from django.urls import path

from indexer.api.views import (
    config_summary,
    execution_history,
    execution_status,
    health_check,
    quota_reset,
    quota_status,
    trigger_submission,
)

app_name = 'indexer_api'

urlpatterns = [
    # Submission endpoints
    path('trigger/', trigger_submission, name='trigger_submission'),
    path('status/', execution_status, name='execution_status'),
    path('history/', execution_history, name='execution_history'),

    # Quota endpoints
    path('quota/', quota_status, name='quota_status'),
    path('quota/reset/', quota_reset, name='quota_reset'),

    # Configuration and health
    path('config/', config_summary, name='config_summary'),
    path('health/', health_check, name='health_check'),
]
