MODULE_ID = "advisory"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Maintenance advisory narratives from an external text-generation API"

ROUTES = []

TABLES = []

PUBLISHES = []

SUBSCRIBES = []

IMPLEMENTS = ["AdvisoryGenerator"]

REQUIRES = []

DAEMONS = []


def build_advisory_generator(settings):
    """HttpAdvisoryGenerator when ADVISORY_API_URL is set, otherwise a no-op generator."""
    from modules.advisory.generator import HttpAdvisoryGenerator, NullAdvisoryGenerator

    if not settings.advisory_api_url:
        return NullAdvisoryGenerator()
    return HttpAdvisoryGenerator(
        settings.advisory_api_url,
        api_key=settings.advisory_api_key,
        model=settings.advisory_model,
        timeout=settings.advisory_timeout_seconds,
    )


def register(app, registry) -> None:
    """Register the configured AdvisoryGenerator."""
    from core.config import settings

    registry.register_provider("AdvisoryGenerator", build_advisory_generator(settings))
