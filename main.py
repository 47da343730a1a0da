"""
Health check endpoint for the E-Stock API.

This module provides a simple health check endpoint that can be used
for monitoring and load balancer health checks.
"""

from utils.decorators import lambda_handler
from utils.responses import success_response


@lambda_handler()
def healthz(event, context):
    """
    Health check endpoint for the E-Stock API.

    Returns a simple success response to indicate the service is running.
    This endpoint does not require authentication.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        HTTP response indicating service health
    """
    return success_response(
        data={
            "status": "healthy",
            "service": "e-stock-api",
            "version": "1.0.0",
        },
        message="Service is running",
    )
