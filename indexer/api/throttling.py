"""
API throttling classes for the operator API.
"""

from rest_framework.throttling import UserRateThrottle


class SubmissionTriggerThrottle(UserRateThrottle):
    """
    Throttle for manual submission triggers.

    Rate: 10 requests per hour per user.
    Applied to: /api/v1/trigger/
    """

    rate = '10/hour'
    scope = 'submission_trigger'
