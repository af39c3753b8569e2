"""Handler modules for CRD resources."""

# Import handlers to register them - handlers register themselves via @kopf decorators
from . import namespacestore  # noqa: F401
