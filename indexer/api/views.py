"""
Operator API views.

REST endpoints for running and inspecting submissions:
- Manual trigger (synchronous run with text report)
- Last execution status and execution history
- Bing quota status and reset
- Masked configuration summary
- Health check

Site CRUD is handled in Django Admin. All endpoints except health require
authentication.
"""

import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from indexer.api.throttling import SubmissionTriggerThrottle
from indexer.exceptions import ConfigurationError, IndexerError
from indexer.services.execution_store import ExecutionStore
from indexer.services.quota_admission import QuotaAdmission
from indexer.services.scheduler import (
    CHANNEL_SELECTIONS,
    CHANNELS_ALL,
    SiteScheduler,
    format_stats_report,
    mark_site_run,
)
from indexer.services.site_config import LEGACY_SITE_ID, get_config_summary, resolve_config
from indexer.utils.async_runner import run_async

logger = logging.getLogger(__name__)

SITE_ID_PARAMETER = OpenApiParameter(
    name='site_id',
    type=str,
    location=OpenApiParameter.QUERY,
    description='Site identifier ("default" for the settings-based site)',
)


def _site_id(request) -> str:
    return request.query_params.get('site_id') or LEGACY_SITE_ID


@extend_schema(
    tags=['Submission'],
    summary='Trigger a submission run',
    description='''
    Run the submission pipeline for one site synchronously and return the
    text report. Channels: all, indexnow, bing.
    ''',
    request={
        'application/json': {
            'type': 'object',
            'properties': {
                'site_id': {'type': 'string', 'default': LEGACY_SITE_ID},
                'channels': {'type': 'string', 'enum': list(CHANNEL_SELECTIONS), 'default': CHANNELS_ALL},
            },
        }
    },
    responses={
        200: {'description': 'Run completed'},
        400: {'description': 'Invalid channel selection or configuration'},
        500: {'description': 'Run failed'},
    },
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([SubmissionTriggerThrottle])
def trigger_submission(request):
    """
    Run a site's submission pipeline now.

    Request body:
    {
        "site_id": "example.com",
        "channels": "all"
    }
    """
    site_id = request.data.get('site_id') or LEGACY_SITE_ID
    channels = request.data.get('channels') or CHANNELS_ALL

    if channels not in CHANNEL_SELECTIONS:
        return Response(
            {'error': f'Invalid channels. Valid values: {", ".join(CHANNEL_SELECTIONS)}'},
            status=status.HTTP_400_BAD_REQUEST
        )

    logger.info(f"Manual trigger for site {site_id} (channels: {channels})")

    try:
        stats = run_async(SiteScheduler(site_id).run(channels=channels))
    except ConfigurationError as e:
        return Response({
            'success': False,
            'site_id': site_id,
            'error': str(e),
            'errors': e.errors,
        }, status=status.HTTP_400_BAD_REQUEST)
    except IndexerError as e:
        logger.error(f"Manual trigger failed for site {site_id}: {e}")
        return Response({
            'success': False,
            'site_id': site_id,
            'error': str(e),
        }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if site_id != LEGACY_SITE_ID:
        mark_site_run(site_id)

    return Response({
        'success': True,
        'site_id': site_id,
        'stats': stats.to_dict(),
        'report': format_stats_report(stats),
    })


@extend_schema(
    tags=['Submission'],
    summary='Last execution',
    parameters=[SITE_ID_PARAMETER],
    responses={200: {'description': 'Last execution record'}, 404: {'description': 'Never run'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def execution_status(request):
    """Return the last execution record for a site."""
    site_id = _site_id(request)
    record = run_async(ExecutionStore().get_last_execution(site_id))
    if record is None:
        return Response(
            {'error': f'No executions recorded for {site_id}'},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response(record)


@extend_schema(
    tags=['Submission'],
    summary='Execution history',
    parameters=[
        SITE_ID_PARAMETER,
        OpenApiParameter(
            name='limit',
            type=int,
            location=OpenApiParameter.QUERY,
            description='Maximum number of records (newest first)',
        ),
    ],
    responses={200: {'description': 'Execution history'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def execution_history(request):
    """Return a site's execution history, newest first."""
    site_id = _site_id(request)
    try:
        limit = int(request.query_params.get('limit', 0)) or None
    except ValueError:
        return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)

    records = run_async(ExecutionStore().get_history(site_id, limit=limit))
    return Response({
        'site_id': site_id,
        'total': len(records),
        'records': records,
    })


@extend_schema(
    tags=['Quota'],
    summary='Bing quota status',
    parameters=[SITE_ID_PARAMETER],
    responses={200: {'description': 'Quota status'}, 400: {'description': 'Invalid configuration'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def quota_status(request):
    """Return today's Bing quota usage for a site."""
    site_id = _site_id(request)
    try:
        config = run_async(resolve_config(site_id))
    except ConfigurationError as e:
        return Response({'error': str(e), 'errors': e.errors}, status=status.HTTP_400_BAD_REQUEST)

    quota = run_async(QuotaAdmission().get_quota_status(config.site_id, config.bing_daily_quota))
    quota['site_id'] = config.site_id
    quota['enabled'] = config.bing_active
    quota['priority'] = config.bing_priority
    return Response(quota)


@extend_schema(
    tags=['Quota'],
    summary='Reset today\'s Bing quota',
    parameters=[SITE_ID_PARAMETER],
    responses={200: {'description': 'Quota reset'}, 500: {'description': 'Store failure'}},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def quota_reset(request):
    """Clear today's Bing quota counter for a site."""
    site_id = request.data.get('site_id') or _site_id(request)
    try:
        run_async(QuotaAdmission().reset_today(site_id))
    except IndexerError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({'success': True, 'site_id': site_id})


@extend_schema(
    tags=['Configuration'],
    summary='Configuration summary',
    description='Resolved configuration for a site with API keys masked.',
    parameters=[SITE_ID_PARAMETER],
    responses={200: {'description': 'Configuration summary'}, 400: {'description': 'Invalid configuration'}},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def config_summary(request):
    """Return the masked configuration for a site."""
    site_id = _site_id(request)
    try:
        config = run_async(resolve_config(site_id))
    except ConfigurationError as e:
        return Response({'error': str(e), 'errors': e.errors}, status=status.HTTP_400_BAD_REQUEST)
    return Response(get_config_summary(config))


@extend_schema(
    tags=['Health'],
    summary='Health check',
    responses={200: {'description': 'Service healthy'}},
)
@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness check for load balancers."""
    return Response({
        'status': 'ok',
        'timestamp': timezone.now().isoformat(),
    })
