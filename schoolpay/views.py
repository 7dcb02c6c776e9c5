import logging

from django.http import JsonResponse

logger = logging.getLogger(__name__)


def error_404_view(request, exception):
    return JsonResponse({"error": "Not found", "path": request.path}, status=404)


def error_500_view(request):
    # The original exception has already been logged by django.request
    logger.error("Unhandled server error on %s", request.path)
    return JsonResponse({"error": "Internal server error"}, status=500)
