"""
Feature modules live under this package.

Each module owns its models and blueprint while reusing the platform
primitives (session, route guard, authorization, audit, DB session).
"""

# Module models subclass app.portal.models.Base; load the core models first so
# importing a module's models directly never hits a half-initialised Base.
import app.portal.models  # noqa: E402,F401
