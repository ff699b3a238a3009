"""
Central constants for the claims portal.
"""
from __future__ import annotations

# Roles
ROLE_REGISTRY = "REGISTRY"
ROLE_COORDINATOR = "COORDINATOR"
ROLE_LECTURER = "LECTURER"
ROLES = (ROLE_REGISTRY, ROLE_COORDINATOR, ROLE_LECTURER)

# Claim lifecycle. PENDING is the only non-terminal status.
CLAIM_PENDING = "PENDING"
CLAIM_APPROVED = "APPROVED"
CLAIM_REJECTED = "REJECTED"
CLAIM_STATUSES = (CLAIM_PENDING, CLAIM_APPROVED, CLAIM_REJECTED)

# Claim variants
CLAIM_TEACHING = "TEACHING"
CLAIM_TRANSPORTATION = "TRANSPORTATION"
CLAIM_THESIS_PROJECT = "THESIS_PROJECT"
CLAIM_TYPES = (CLAIM_TEACHING, CLAIM_TRANSPORTATION, CLAIM_THESIS_PROJECT)

TRANSPORT_PUBLIC = "PUBLIC"
TRANSPORT_PRIVATE = "PRIVATE"
TRANSPORT_TYPES = (TRANSPORT_PUBLIC, TRANSPORT_PRIVATE)

THESIS_SUPERVISION = "SUPERVISION"
THESIS_EXAMINATION = "EXAMINATION"
THESIS_TYPES = (THESIS_SUPERVISION, THESIS_EXAMINATION)

SUPERVISION_RANKS = ("PHD", "MPHIL", "MA", "MED", "BED", "BA", "OTHER")

MAX_SUPERVISED_STUDENTS = 10

# Route classification
PUBLIC_PATH_PREFIXES = ("/login", "/signup")
UNGUARDED_PATH_PREFIXES = ("/api/", "/static/", "/favicon.ico", "/health", "/healthz")

# Redirect targets
LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"
ROLE_LANDING_PATHS = {
    ROLE_REGISTRY: "/registry/",
    ROLE_COORDINATOR: "/coordinator/",
    ROLE_LECTURER: "/lecturer/",
}
